"""
app/validators package marker.
"""

from app.validators.business_rules import RuleFinding
from app.validators.phi_detector import PHIDetector, PHIFinding

__all__ = [
    "PHIDetector",
    "PHIFinding",
    "RuleFinding",
]
