import base64
from typing import Any, Dict


# ------------------------------------------------------------------
# Borrower info (shape sent by the loan officer front-end)
# ------------------------------------------------------------------

def borrower_info_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "region": "Lagos West",
        "branch": "Ikeja",
        "loanType": "Business Loan",
        "obligorName": "Adaeze Okafor",
        "obligorPhoneNumber": "08012345678",
        "obligorHomeAddress": "12 Allen Avenue",
        "nearestBusStop": "Allen Junction",
        "landmark": "Opposite Mobil filling station",
        "bvnDetails": "22123456789",
        "obligorBusiness": "Provision store",
        "obligorShopAddress": "Shop 4, Computer Village",
        "inStoreStock": 1000,
        "kycValidation": "Valid",
        "businessOwnershipValidation": "Verified",
        "loanAmount": 50000,
        "tenor": "12",
        "dailyRepayment": "1388",
        "guarantorName": "Chinedu Okafor",
        "guarantorPhoneNumber": "08098765432",
        "guarantorOccupation": "Civil Servant",
        "guarantorWorkAddress": "Ikeja Grammar School",
        "guarantorHomeAddress": "5 Obafemi Awolowo Way",
        "guarantorBusStop": "Awolowo",
        "guarantorLandmark": "Near the police station",
        "borrowerImageUrl": "",
        "guarantorImageUrl": "",
        "utilityBillUrl": "",
        "authorityToSeizeUrl": "",
        "shopVideoUrl": "",
    }
    payload.update(overrides)
    return payload


# ------------------------------------------------------------------
# Direct debit mandate
# ------------------------------------------------------------------

def mandate_payload(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "borrower_name": "Adaeze Okafor",
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
        "payer_name": "Adaeze Okafor",
        "payer_phone": "+234 987 654 3210",
        "payer_bank": "GTBank",
        "payer_email": "adaeze@example.com",
        "payer_account_number": "0987654321",
    }
    payload.update(overrides)
    return payload


# ------------------------------------------------------------------
# Images
# ------------------------------------------------------------------

# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)

PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")
