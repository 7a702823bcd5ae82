"""Base Pydantic schema shared by the API request and response models."""
from pydantic import BaseModel, ConfigDict


class StrictBaseModel(BaseModel):
    """Model that rejects unknown fields.

    A scan body with a misspelled key (``symbol`` instead of ``symbols``) is a
    422, not a silently empty scan. Rule overrides are the exception: they
    travel as a plain dict inside ``ScanRequest.rules`` and unknown rule keys
    are ignored by ``RuleConfig``.
    """

    model_config = ConfigDict(extra="forbid")
