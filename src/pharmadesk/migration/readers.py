"""Source file readers for migration imports.

This module reads the CSV and JSON exports produced by other pharmacy systems
into plain row dictionaries.

Classes:
    CSVReader: Reads CSV exports
    JSONReader: Reads JSON exports (a list of objects, or ``{"rows": [...]}``)
    SourceFormatDetector: Picks a reader from the file extension
"""

import csv
import json
from pathlib import Path
from typing import Any, Dict, List, Union

from .exceptions import SourceFileError


class CSVReader:
    """Reads a CSV export into row dictionaries."""

    def __init__(self, file_path: Path):
        self.file_path = Path(file_path)

    def read(self) -> List[Dict[str, Any]]:
        """Read every data row, keyed by the header names.

        Returns:
            List of row dictionaries with stripped string values

        Raises:
            SourceFileError: If the file is missing, empty or not valid CSV
        """
        _check_file(self.file_path)

        rows = []
        try:
            with open(self.file_path, "r", encoding="utf-8-sig", newline="") as file:
                reader = csv.DictReader(file)
                if reader.fieldnames is None:
                    raise SourceFileError(
                        "CSV file appears to be empty or has no headers",
                        file_path=str(self.file_path),
                    )

                for row in reader:
                    # Short rows leave None values; blank lines are skipped by DictReader
                    rows.append(
                        {
                            key.strip(): value.strip() if isinstance(value, str) else value
                            for key, value in row.items()
                            if key is not None
                        }
                    )
        except csv.Error as e:
            raise SourceFileError(
                f"CSV parsing error: {e}",
                file_path=str(self.file_path),
                line_number=getattr(e, "line_num", None),
                original_exception=e,
            )
        except UnicodeDecodeError as e:
            raise SourceFileError(
                f"File encoding error: {e}. Please ensure file is UTF-8 encoded",
                file_path=str(self.file_path),
                original_exception=e,
            )

        return rows


class JSONReader:
    """Reads a JSON export into row dictionaries."""

    def __init__(self, file_path: Path):
        self.file_path = Path(file_path)

    def read(self) -> List[Dict[str, Any]]:
        """Read the rows of a JSON export.

        Returns:
            List of row dictionaries

        Raises:
            SourceFileError: If the file is missing or does not hold a list of objects
        """
        _check_file(self.file_path)

        try:
            with open(self.file_path, "r", encoding="utf-8") as file:
                data = json.load(file)
        except json.JSONDecodeError as e:
            raise SourceFileError(
                f"Invalid JSON format: {e.msg}",
                file_path=str(self.file_path),
                line_number=e.lineno,
                original_exception=e,
            )
        except UnicodeDecodeError as e:
            raise SourceFileError(
                f"File encoding error: {e}. Please ensure file is UTF-8 encoded",
                file_path=str(self.file_path),
                original_exception=e,
            )

        if isinstance(data, dict) and isinstance(data.get("rows"), list):
            data = data["rows"]

        if not isinstance(data, list):
            raise SourceFileError(
                "JSON file must contain a list of objects or a 'rows' list",
                file_path=str(self.file_path),
            )

        for index, row in enumerate(data):
            if not isinstance(row, dict):
                raise SourceFileError(
                    f"Row {index} must be an object",
                    file_path=str(self.file_path),
                )

        return data


def _check_file(file_path: Path) -> None:
    if not file_path.exists():
        raise SourceFileError(f"File not found: {file_path}", file_path=str(file_path))
    if not file_path.is_file():
        raise SourceFileError(f"Path is not a file: {file_path}", file_path=str(file_path))


class SourceFormatDetector:
    """Detects source file format based on extension and provides a reader."""

    SUPPORTED_EXTENSIONS = {".csv", ".json"}

    @classmethod
    def detect_format(cls, file_path: Union[str, Path]) -> str:
        """Detect file format based on extension.

        Returns:
            File format ('csv' or 'json')

        Raises:
            SourceFileError: If file format is not supported
        """
        extension = Path(file_path).suffix.lower()

        if extension == ".csv":
            return "csv"
        elif extension == ".json":
            return "json"

        supported_formats = ", ".join(sorted(cls.SUPPORTED_EXTENSIONS))
        raise SourceFileError(
            f"Unsupported file format '{extension}'. Supported formats are: {supported_formats}",
            file_path=str(file_path),
        )

    @classmethod
    def get_reader(cls, file_path: Union[str, Path]) -> Union[CSVReader, JSONReader]:
        if cls.detect_format(file_path) == "csv":
            return CSVReader(Path(file_path))
        return JSONReader(Path(file_path))


def read_source_file(file_path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Read a CSV or JSON source file into row dictionaries."""
    return SourceFormatDetector.get_reader(file_path).read()
