import re
import logging
from typing import Optional
from salesrecon.core.errors import MissingTaxJurisdiction, ValidationError
from salesrecon.schemas.tax import TaxClassification

logger = logging.getLogger(__name__)

GSTIN_PATTERN = r"^[0-9]{2}[A-Z]{5}[0-9]{4}[A-Z]{1}[1-9A-Z]{1}Z[0-9A-Z]{1}$"

# GST state codes, keyed by upper-case state name
STATE_CODES = {
    "JAMMU AND KASHMIR": "01", "HIMACHAL PRADESH": "02", "PUNJAB": "03",
    "CHANDIGARH": "04", "UTTARAKHAND": "05", "HARYANA": "06", "DELHI": "07",
    "RAJASTHAN": "08", "UTTAR PRADESH": "09", "BIHAR": "10", "SIKKIM": "11",
    "ARUNACHAL PRADESH": "12", "NAGALAND": "13", "MANIPUR": "14",
    "MIZORAM": "15", "TRIPURA": "16", "MEGHALAYA": "17", "ASSAM": "18",
    "WEST BENGAL": "19", "JHARKHAND": "20", "ODISHA": "21",
    "CHHATTISGARH": "22", "MADHYA PRADESH": "23", "GUJARAT": "24",
    "DADRA AND NAGAR HAVELI AND DAMAN AND DIU": "26", "MAHARASHTRA": "27",
    "KARNATAKA": "29", "GOA": "30", "LAKSHADWEEP": "31", "KERALA": "32",
    "TAMIL NADU": "33", "PUDUCHERRY": "34",
    "ANDAMAN AND NICOBAR ISLANDS": "35", "TELANGANA": "36",
    "ANDHRA PRADESH": "37", "LADAKH": "38",
}


def is_valid_gstin(gstin: Optional[str]) -> bool:
    return bool(gstin) and re.match(GSTIN_PATTERN, gstin.strip().upper()) is not None


def state_code_for_name(state_name: Optional[str]) -> Optional[str]:
    if not state_name:
        return None
    return STATE_CODES.get(" ".join(state_name.upper().split()))


def state_code_from_gstin(gstin: Optional[str]) -> str:
    """Leading two digits of a GSTIN are the registering state's code."""
    value = (gstin or "").strip()
    if len(value) < 2:
        raise ValidationError(f"GSTIN '{value}' is too short to carry a state code", field="gstin")
    prefix = value[:2]
    if not prefix.isdigit():
        raise ValidationError(f"GSTIN '{value}' does not start with a state code", field="gstin")
    return prefix


def _normalize_code(code: str, field: str) -> str:
    code = code.strip()
    if not code.isdigit() or len(code) > 2:
        raise ValidationError(f"State code '{code}' must be one or two digits", field=field)
    return code.zfill(2)


def resolve_classification(
    seller_state_code: Optional[str],
    buyer_state_code: Optional[str] = None,
    buyer_gstin: Optional[str] = None,
) -> TaxClassification:
    """
    Decide between intra-state (CGST+SGST) and inter-state (IGST) supply.

    An explicit buyer state code wins over the one derived from the GSTIN.
    A buyer with neither is rejected instead of defaulting to intra-state.
    """
    if not seller_state_code or not seller_state_code.strip():
        raise MissingTaxJurisdiction("Seller state code is required", field="seller_state_code")
    seller = _normalize_code(seller_state_code, "seller_state_code")

    if buyer_state_code and buyer_state_code.strip():
        buyer = _normalize_code(buyer_state_code, "buyer_state_code")
    elif buyer_gstin and buyer_gstin.strip():
        buyer = state_code_from_gstin(buyer_gstin)
    else:
        logger.warning("Tax classification rejected: buyer has no state code or GSTIN")
        raise MissingTaxJurisdiction("Buyer state code is required to classify the supply", field="buyer_state_code")

    return TaxClassification.INTRA_STATE if seller == buyer else TaxClassification.INTER_STATE
