"""
forms/models.py -- Domain dataclass for submitted business forms.

Pure data container with zero logic; all persistence rules live in
forms/store.py. owner_id is the user id from the session that submitted the
form, which is how a user's own submissions are found again.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass
class BusinessForm:
    """One business-performance report for a period.

    Incomes are Decimal so currency amounts round-trip exactly.
    id and created_at are None until the store writes the record.
    """

    owner_id: str
    business_name: str  # unique across all forms
    period: str  # free text, e.g. "2024-Q1"
    expected_income: Decimal
    actual_income: Decimal
    reason: str
    category: str
    id: Optional[str] = None
    created_at: Optional[datetime] = None
