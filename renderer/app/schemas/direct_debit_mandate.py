from typing import Any, ClassVar, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DirectDebitMandatePayload(BaseModel):
    """
    Direct debit mandate issued by a borrower in favour of Seeds and Pennies.

    ``borrower_name`` and ``business_name`` are the only fields the
    document cannot be produced without; :meth:`missing_required` reports
    them so the route can answer with a 400 instead of a schema error.
    """

    model_config = ConfigDict(
        coerce_numbers_to_str=True,
        extra="ignore",
        str_strip_whitespace=True,
    )

    REQUIRED_FIELDS: ClassVar[tuple] = ("borrower_name", "business_name")

    # ------------------------------------------------------------------
    # Borrower / beneficiary
    # ------------------------------------------------------------------
    borrower_name: str = Field("", description="Name printed on the consent.")
    business_name: str = ""
    business_phone: str = ""
    business_email: str = ""
    business_bank: str = ""
    business_account_number: str = ""

    # ------------------------------------------------------------------
    # Mandate details
    # ------------------------------------------------------------------
    payment_description: str = ""
    amount: str = ""
    recursivity: str = Field("", description="Debit frequency, e.g. 'Daily'.")
    scheduled_reduction: str = ""
    start_date: str = ""
    end_date: str = ""
    check_balance: str = ""

    # ------------------------------------------------------------------
    # Payer
    # ------------------------------------------------------------------
    payer_name: str = ""
    payer_phone: str = ""
    payer_bank: str = ""
    payer_email: str = ""
    payer_account_number: str = ""

    EXAMPLE: ClassVar[Dict[str, str]] = {
        "borrower_name": "John Doe",
        "business_name": "Seeds and Pennies Limited",
        "business_phone": "+234 123 456 7890",
        "business_email": "business@seeds.com",
        "business_bank": "First Bank",
        "business_account_number": "1234567890",
        "payment_description": "Daily loan repayment for business loan",
        "amount": "₦50,000.00",
        "recursivity": "Daily",
        "scheduled_reduction": "None",
        "start_date": "2025-01-20",
        "end_date": "2025-12-20",
        "check_balance": "Yes",
        "payer_name": "John Doe",
        "payer_phone": "+234 987 654 3210",
        "payer_bank": "GTBank",
        "payer_email": "john@example.com",
        "payer_account_number": "0987654321",
    }

    @field_validator("*", mode="before")
    @classmethod
    def blank_if_missing(cls, value: Any) -> Any:
        if value is None or value is False:
            return ""
        if value is True:
            return "true"
        return value

    def missing_required(self) -> tuple:
        return tuple(
            name for name in self.REQUIRED_FIELDS if not getattr(self, name)
        )

    @classmethod
    def preview(
        cls, overrides: Optional[Mapping[str, str]] = None
    ) -> "DirectDebitMandatePayload":
        """
        Example mandate for HTML previews.

        Each field takes the override when present and non-empty,
        otherwise the example value.
        """
        overrides = overrides or {}
        values = {
            name: overrides.get(name) or default
            for name, default in cls.EXAMPLE.items()
        }
        return cls.model_validate(values)
