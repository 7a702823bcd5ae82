"""Pydantic schemas for API request/response validation.

This module exports all Pydantic schemas used throughout the application.
"""

from threeline.schemas.base import StrictBaseModel
from threeline.schemas.rules import RuleConfig, normalize_rule_config
from threeline.schemas.three_line import (
    CandleResponse,
    CheckResponse,
    LatestMetricsResponse,
    ScanItemResponse,
    ScanRequest,
    ScanResponse,
    ThreeLineResponse,
    VerdictResponse,
)

__all__ = [
    "CandleResponse",
    "CheckResponse",
    "LatestMetricsResponse",
    "RuleConfig",
    "ScanItemResponse",
    "ScanRequest",
    "ScanResponse",
    "StrictBaseModel",
    "ThreeLineResponse",
    "VerdictResponse",
    "normalize_rule_config",
]
