from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# Alternative keys sent by the sample front-end form.
_FALLBACK_KEYS: Dict[str, str] = {
    "nearestBusStop": "nearestBusStopHome",
    "landmark": "landmarkHome",
    "bvnDetails": "bvnNinDetails",
    "guarantorBusStop": "guarantorNearestBusStop",
}


class BorrowerInfoPayload(BaseModel):
    """
    KYC record for a loan applicant and their guarantor.

    Every field is an optional display string. Field officers submit
    partially completed forms, so an empty value renders as a blank row
    rather than failing validation.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
        str_strip_whitespace=True,
    )

    # ------------------------------------------------------------------
    # Borrower
    # ------------------------------------------------------------------
    region: str = ""
    branch: str = ""
    loan_type: str = Field("", alias="loanType")
    obligor_name: str = Field("", alias="obligorName")
    obligor_phone_number: str = Field("", alias="obligorPhoneNumber")
    obligor_home_address: str = Field("", alias="obligorHomeAddress")
    nearest_bus_stop: str = Field("", alias="nearestBusStop")
    landmark: str = ""
    bvn_details: str = Field(
        "",
        alias="bvnDetails",
        description="BVN or NIN reference supplied by the applicant.",
    )

    # ------------------------------------------------------------------
    # Business
    # ------------------------------------------------------------------
    obligor_business: str = Field("", alias="obligorBusiness")
    obligor_shop_address: str = Field("", alias="obligorShopAddress")
    in_store_stock: str = Field("", alias="inStoreStock")
    kyc_validation: str = Field("", alias="kycValidation")
    business_ownership_validation: str = Field(
        "", alias="businessOwnershipValidation"
    )
    loan_amount: str = Field("", alias="loanAmount")
    tenor: str = ""
    daily_repayment: str = Field("", alias="dailyRepayment")

    # ------------------------------------------------------------------
    # Guarantor
    # ------------------------------------------------------------------
    guarantor_name: str = Field("", alias="guarantorName")
    guarantor_phone_number: str = Field("", alias="guarantorPhoneNumber")
    guarantor_occupation: str = Field("", alias="guarantorOccupation")
    guarantor_work_address: str = Field("", alias="guarantorWorkAddress")
    guarantor_home_address: str = Field("", alias="guarantorHomeAddress")
    guarantor_bus_stop: str = Field("", alias="guarantorBusStop")
    guarantor_landmark: str = Field("", alias="guarantorLandmark")

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------
    borrower_image_url: str = Field("", alias="borrowerImageUrl")
    guarantor_image_url: str = Field("", alias="guarantorImageUrl")
    utility_bill_url: str = Field("", alias="utilityBillUrl")
    authority_to_seize_url: str = Field("", alias="authorityToSeizeUrl")
    shop_video_url: str = Field("", alias="shopVideoUrl")

    @model_validator(mode="before")
    @classmethod
    def apply_fallback_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        merged = dict(data)
        for primary, fallback in _FALLBACK_KEYS.items():
            if not merged.get(primary) and merged.get(fallback):
                merged[primary] = merged[fallback]
        return merged

    @field_validator("*", mode="before")
    @classmethod
    def blank_if_missing(cls, value: Any) -> Any:
        if value is None or value is False:
            return ""
        if value is True:
            return "true"
        return value
