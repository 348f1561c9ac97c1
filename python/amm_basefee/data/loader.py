"""
Data Loader for Block Gas Usage Replays

Loads per-block gas usage in CSV format for replay through the base fee
simulation engine.

CSV Format:
timestamp,gas_used,block_number
1700000000,12500000,1024

`timestamp` may be unix seconds or a datetime string; `block_number` is
optional (decimal or 0x-prefixed hex).
"""

import pandas as pd
import numpy as np
from typing import Dict, Any, List, Tuple
from pathlib import Path
import logging

from ..core.units import UINT32_MAX

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ['timestamp', 'gas_used']


class DataLoader:
    """
    Data loader for block gas usage data.
    """

    def __init__(self, max_gas_per_block: int = UINT32_MAX):
        """
        Initialize data loader.

        Args:
            max_gas_per_block: Largest gas_used accepted per row
        """
        if max_gas_per_block <= 0:
            raise ValueError(f"max_gas_per_block must be positive, got {max_gas_per_block}")
        self.max_gas_per_block = max_gas_per_block

    def load_csv(self, file_path: str) -> pd.DataFrame:
        """
        Load a block CSV file with validation.

        Args:
            file_path: Path to CSV file

        Returns:
            DataFrame sorted by timestamp with integer unix-second timestamps

        Raises:
            ValueError: If file format is invalid
            FileNotFoundError: If file doesn't exist
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"Data file not found: {file_path}")

        try:
            df = pd.read_csv(file_path)
        except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
            raise ValueError(f"Failed to read CSV file: {e}") from e

        return self.prepare_frame(df)

    def prepare_frame(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Validate and normalise a raw block DataFrame.

        Raises:
            ValueError: If columns are missing or values are out of range
        """
        missing_columns = [col for col in REQUIRED_COLUMNS if col not in df.columns]
        if missing_columns:
            raise ValueError(f"Missing required columns: {missing_columns}")

        if len(df) == 0:
            raise ValueError("Block data is empty")

        df = df.copy()

        if not pd.api.types.is_integer_dtype(df['gas_used']):
            raise ValueError("gas_used column must contain integers")
        if (df['gas_used'] < 0).any():
            raise ValueError("gas_used cannot contain negative values")
        if (df['gas_used'] > self.max_gas_per_block).any():
            raise ValueError(f"gas_used cannot exceed {self.max_gas_per_block:,}")

        df['timestamp'] = self._to_unix_seconds(df['timestamp'])

        if 'block_number' in df.columns:
            df['block_number'] = df['block_number'].map(self._parse_block_number)

        # Sort by timestamp to ensure chronological order
        df = df.sort_values('timestamp', kind='stable').reset_index(drop=True)

        return df

    @staticmethod
    def _to_unix_seconds(column: pd.Series) -> pd.Series:
        if pd.api.types.is_integer_dtype(column):
            return column.astype('int64')
        try:
            parsed = pd.to_datetime(column, utc=True)
        except (ValueError, TypeError) as e:
            raise ValueError(f"Invalid timestamp format: {e}") from e
        return (parsed - pd.Timestamp(0, tz='UTC')) // pd.Timedelta(seconds=1)

    @staticmethod
    def _parse_block_number(value: Any) -> int:
        if isinstance(value, str):
            return int(value, 16) if value.startswith('0x') else int(value)
        return int(value)

    def validate_data_continuity(self, df: pd.DataFrame, max_gap_seconds: int = 60) -> Dict[str, Any]:
        """
        Check for gaps between consecutive blocks.

        Args:
            df: DataFrame from load_csv()
            max_gap_seconds: Maximum allowed gap between consecutive timestamps

        Returns:
            Dictionary with validation results and statistics
        """
        if len(df) < 2:
            return {'is_continuous': True, 'gaps': [], 'total_gaps': 0}

        time_diffs = df['timestamp'].diff().iloc[1:]
        gaps = time_diffs[time_diffs > max_gap_seconds]

        return {
            'is_continuous': len(gaps) == 0,
            'total_gaps': len(gaps),
            'gaps': gaps.tolist(),
            'max_gap_seconds': int(gaps.max()) if len(gaps) > 0 else 0,
            'avg_interval_seconds': float(time_diffs.mean()),
            'data_span_hours': (df['timestamp'].iloc[-1] - df['timestamp'].iloc[0]) / 3600,
        }

    def get_data_summary(self, df: pd.DataFrame) -> Dict[str, Any]:
        """
        Generate summary statistics for a block DataFrame.

        Args:
            df: DataFrame from load_csv()

        Returns:
            Dictionary with summary statistics
        """
        return {
            'record_count': len(df),
            'time_range': {
                'start': int(df['timestamp'].iloc[0]),
                'end': int(df['timestamp'].iloc[-1]),
                'duration_hours': (df['timestamp'].iloc[-1] - df['timestamp'].iloc[0]) / 3600,
            },
            'gas_used_stats': {
                'min': int(df['gas_used'].min()),
                'max': int(df['gas_used'].max()),
                'mean': float(df['gas_used'].mean()),
                'median': float(df['gas_used'].median()),
                'total': int(df['gas_used'].sum()),
            },
        }

    def load_multiple_files(self, file_paths: List[str]) -> pd.DataFrame:
        """
        Load and concatenate multiple CSV files.

        Several blocks may share a second, so duplicates are identified by
        block_number when present and by the whole row otherwise. The first
        occurrence is kept.
        """
        if not file_paths:
            raise ValueError("No file paths provided")

        combined_df = pd.concat([self.load_csv(path) for path in file_paths], ignore_index=True)

        has_block_numbers = (
            'block_number' in combined_df.columns and combined_df['block_number'].notna().all()
        )
        subset = ['block_number'] if has_block_numbers else None
        before = len(combined_df)
        combined_df = combined_df.drop_duplicates(subset=subset, keep='first')
        combined_df = combined_df.sort_values('timestamp', kind='stable').reset_index(drop=True)
        if len(combined_df) < before:
            logger.warning(f"Dropped {before - len(combined_df)} duplicate blocks")

        return combined_df

    def extract_block_series(self, df: pd.DataFrame) -> Tuple[np.ndarray, np.ndarray]:
        """
        Extract (timestamps, gas_used) arrays for SimulationEngine.simulate_series.
        """
        for column in REQUIRED_COLUMNS:
            if column not in df.columns:
                raise ValueError(f"DataFrame missing {column} column. Run load_csv first.")

        return df['timestamp'].to_numpy(dtype=np.int64), df['gas_used'].to_numpy(dtype=np.int64)

    def __str__(self) -> str:
        return f"DataLoader(max_gas_per_block={self.max_gas_per_block:,})"

    def __repr__(self) -> str:
        return self.__str__()
