"""Built-in anonymization techniques."""

from anonyflow.core.techniques.base import AnonymizationTechnique
from anonyflow.core.techniques.date_shifting import DateShiftingTechnique
from anonyflow.core.techniques.geographic import GeographicMaskingTechnique
from anonyflow.core.techniques.hashing import HashingTechnique
from anonyflow.core.techniques.masking import MaskingTechnique
from anonyflow.core.techniques.pseudonymization import PseudonymizationTechnique
from anonyflow.core.techniques.synthetic import SyntheticDataTechnique
from anonyflow.core.techniques.tokenization import TokenizationTechnique

BUILTIN_TECHNIQUES = (
    HashingTechnique,
    MaskingTechnique,
    TokenizationTechnique,
    PseudonymizationTechnique,
    DateShiftingTechnique,
    GeographicMaskingTechnique,
    SyntheticDataTechnique,
)

__all__ = [
    "AnonymizationTechnique",
    "BUILTIN_TECHNIQUES",
    "DateShiftingTechnique",
    "GeographicMaskingTechnique",
    "HashingTechnique",
    "MaskingTechnique",
    "PseudonymizationTechnique",
    "SyntheticDataTechnique",
    "TokenizationTechnique",
]
