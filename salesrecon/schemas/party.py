from pydantic import BaseModel, field_validator, model_validator
from typing import Optional
from salesrecon.core.jurisdiction import state_code_for_name


class PartyTaxProfile(BaseModel):
    """Buyer or seller as seen by the tax resolver.

    Party master data lives outside this service; callers pass the state and
    GSTIN they hold for the party. When only a state name is given the GST
    state code is looked up from it.
    """
    name: str = "-"
    state_name: Optional[str] = None
    state_code: Optional[str] = None
    gstin: Optional[str] = None

    @field_validator('state_code', 'gstin', 'state_name', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator('gstin')
    @classmethod
    def upper_gstin(cls, v):
        return v.upper() if v else v

    @model_validator(mode='after')
    def fill_state_code(self):
        if not self.state_code and self.state_name:
            self.state_code = state_code_for_name(self.state_name)
        return self
