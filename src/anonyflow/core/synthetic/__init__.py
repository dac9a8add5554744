"""Synthetic value generators used by the synthetic-data technique."""

from anonyflow.core.synthetic.generator import (
    DATA_TYPES,
    SyntheticDataGenerator,
    SyntheticValue,
    detect_data_type,
)

__all__ = [
    "DATA_TYPES",
    "SyntheticDataGenerator",
    "SyntheticValue",
    "detect_data_type",
]
