"""CSV input/output for card imports."""

import csv
import json
import sys
from pathlib import Path
from typing import Any, Dict, IO, List, Optional, Sequence

import pandas as pd
from rich.console import Console

from .config import ImportResult


REQUIRED_COLUMNS = ["card", "exp"]
OPTIONAL_COLUMNS = [
    "first", "last", "zip", "token", "name", "address", "address2",
    "city", "state", "country", "phone", "email", "company",
]
CARD_FIELDS = REQUIRED_COLUMNS + OPTIONAL_COLUMNS

SOURCE_FORMATS = ["default", "cardpointe"]

RESULT_COLUMNS = list(ImportResult.model_fields)


def normalize_header(name: Any) -> str:
    return str(name or "").strip().lower()


def parse_delimiter(delimiter: str) -> str:
    """Accept escaped tab as typed on a shell command line."""
    if delimiter in ("\\t", "tab"):
        return "\t"
    if not delimiter:
        raise ValueError("Delimiter cannot be empty")
    return delimiter


def normalize_cardpointe_row(raw_row: Dict[str, str]) -> Dict[str, str]:
    """Map a CardPointe export row onto the card row fields."""
    row = {normalize_header(k): str(v).strip() for k, v in raw_row.items() if v is not None}

    def get(*names: str) -> str:
        for name in names:
            value = row.get(name, "")
            if value:
                return value
        return ""

    exp = get("expiry", "exp")
    if len(exp) == 4 and "/" not in exp:
        exp = f"{exp[:2]}/{exp[2:]}"

    name = get("name")
    parts = name.split()
    first = parts[0] if parts else ""
    last = " ".join(parts[1:])

    return {
        "card": get("card number"),
        "exp": exp,
        "first": first,
        "last": last,
        "zip": get("postal"),
        "token": get("token"),
        "name": name,
        "address": get("address"),
        "address2": get("address2"),
        "city": get("city"),
        "state": get("state"),
        "country": get("country"),
        "phone": get("phone"),
        "email": get("email"),
        "company": get("company"),
    }


class CardCSVProcessor:
    """Handles card CSV reading, validation, normalization and result output."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)

    def read_csv(self, file_path: Optional[Path], delimiter: str = ",") -> pd.DataFrame:
        """Read a CSV file, or stdin when no path is given, keeping every cell as text."""
        if file_path is not None and not file_path.exists():
            raise FileNotFoundError(f"CSV file not found: {file_path}")

        source = file_path if file_path is not None else sys.stdin
        try:
            df = pd.read_csv(
                source,
                sep=parse_delimiter(delimiter),
                dtype=str,
                keep_default_na=False,
                index_col=False,
                encoding="utf-8",
            )
        except pd.errors.EmptyDataError:
            raise ValueError("No data found in CSV file")
        except (pd.errors.ParserError, UnicodeDecodeError) as e:
            raise ValueError(f"Failed to read CSV file: {e}")

        if df.empty:
            raise ValueError("No data found in CSV file")

        df.columns = [normalize_header(col) for col in df.columns]
        self.console.print(f"[green]Loaded {len(df)} rows from {file_path or 'stdin'}[/green]")
        return df

    def validate_required_columns(self, df: pd.DataFrame, required_columns: Sequence[str] = REQUIRED_COLUMNS) -> None:
        """Validate that required columns exist."""
        missing_columns = [col for col in required_columns if col not in df.columns]

        if missing_columns:
            raise ValueError(
                f"Missing required columns: {missing_columns}. "
                f"Available columns: {list(df.columns)}"
            )

    def extract_card_rows(self, df: pd.DataFrame, source_format: str = "default") -> List[Dict[str, str]]:
        """Turn the DataFrame into card rows keyed by CARD_FIELDS."""
        source_format = source_format.lower()
        if source_format not in SOURCE_FORMATS:
            raise ValueError(f"Unknown source format: {source_format}. Must be one of: {', '.join(SOURCE_FORMATS)}")

        records = df.to_dict(orient="records")

        if source_format == "cardpointe":
            self.console.print("[blue]Input format: CardPointe (columns normalized)[/blue]")
            return [normalize_cardpointe_row(record) for record in records]

        self.validate_required_columns(df)
        return [
            {field: self._clean_string(record.get(field, "")) for field in CARD_FIELDS}
            for record in records
        ]

    def _clean_string(self, value: Any) -> str:
        """Clean and normalize string values."""
        if value is None or pd.isna(value):
            return ""
        return str(value).strip()

    def write_results_csv(self, results: List[ImportResult], stream: IO[str]) -> None:
        """Write one CSV line per import result."""
        writer = csv.DictWriter(stream, fieldnames=RESULT_COLUMNS, lineterminator="\n")
        writer.writeheader()
        for result in results:
            writer.writerow(result.model_dump())

    def write_results_file(self, results: List[ImportResult], output_path: Path) -> None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", newline="", encoding="utf-8") as f:
            self.write_results_csv(results, f)
        self.console.print(f"[blue]Wrote {len(results)} results to {output_path}[/blue]")

    def results_to_json(self, summary: Dict[str, Any], results: List[ImportResult]) -> str:
        return json.dumps(
            {"summary": summary, "results": [result.model_dump() for result in results]},
            indent=2,
        )
