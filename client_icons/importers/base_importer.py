# client_icons/importers/base_importer.py

import logging
import pandas as pd
from typing import Dict, Optional
from ftfy import fix_text
from unidecode import unidecode

logger = logging.getLogger(__name__)


class CSVReader:
    """CSV reading with encoding/delimiter detection; every cell is read as text."""

    ENCODINGS = ["utf-8", "cp1250", "iso-8859-2"]
    DELIMITERS = [";", ",", "\t"]

    @staticmethod
    def read_csv(path: str, delimiter: Optional[str] = None, **kwargs) -> Optional[pd.DataFrame]:
        """
        Read a CSV file trying each delimiter/encoding pair in turn.

        A combination that yields a single column is rejected so that a
        semicolon file is not swallowed whole by the comma attempt.

        Returns:
            DataFrame with empty cells as "" or None if nothing worked
        """
        delimiters = [delimiter] if delimiter else CSVReader.DELIMITERS

        for delim in delimiters:
            for encoding in CSVReader.ENCODINGS:
                try:
                    df = pd.read_csv(
                        path,
                        sep=delim,
                        dtype=str,
                        encoding=encoding,
                        keep_default_na=False,
                        skipinitialspace=True,
                        on_bad_lines="skip",
                        **kwargs
                    )
                except (UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError):
                    continue
                except OSError as e:
                    logger.error(f"❌ Cannot open {path}: {e}")
                    return None

                if not df.empty and (len(df.columns) > 1 or delimiter):
                    logger.debug(f"✅ Read {path} with delimiter='{delim}', encoding={encoding}")
                    return df

        logger.error(f"❌ Could not read {path} with any encoding/delimiter combination")
        return None


class HeaderNormalizer:
    """Map free-form CSV headers (Polish or English) onto importer fields."""

    @staticmethod
    def normalize_header(header: str) -> str:
        """'Nazwa ikony*' -> 'nazwa ikony'"""
        h = fix_text(str(header).strip())
        h = unidecode(h)
        h = h.replace("*", " ").replace("-", " ").replace("_", " ")
        return " ".join(h.split()).lower()

    @staticmethod
    def apply_header_mapping(df: pd.DataFrame, header_map: Dict[str, str]) -> pd.DataFrame:
        """Rename columns whose normalized header is known; others keep their name."""
        df.columns = [
            header_map.get(HeaderNormalizer.normalize_header(h), h)
            for h in df.columns
        ]
        return df


class BaseImporter:
    """Base class for importers with common utilities."""

    def __init__(self, session):
        self.session = session
        self.csv_reader = CSVReader()
        self.header_normalizer = HeaderNormalizer()

    def safe_commit(self, operation_name: str):
        """Commit, or roll back and re-raise."""
        try:
            self.session.commit()
            logger.info(f"✅ {operation_name} committed successfully")
        except Exception as e:
            self.session.rollback()
            logger.error(f"❌ {operation_name} failed: {e}")
            raise
