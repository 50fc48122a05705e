"""Pydantic models for pricing extraction results.

Model output is parsed into plain Python values first and checked with
``core.validator.is_valid``; only then is it converted to these models.
"""
from __future__ import annotations

from dataclasses import dataclass, asdict, field
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class PricingTier(BaseModel):
    """One named pricing option with its price and feature offerings."""
    name: str
    price: str = Field(description="Free-form price text, e.g. '$20/mo'")
    features: Dict[str, str] = Field(default_factory=dict)


class Competitor(BaseModel):
    """A competing company suggested by the text model."""
    name: str
    url: str = ""


def tiers_to_json(tiers: List[PricingTier]) -> list:
    """Serialise tiers to the JSON-ready list the API returns."""
    return [t.model_dump() for t in tiers]


@dataclass
class PricingReport:
    """Outcome of one locate -> render -> extract run."""
    domain: str
    pricing_url: Optional[str]
    tiers: list = field(default_factory=list)
    attempts: int = 0
    duration_ms: int = 0
    screenshot_path: Optional[str] = None

    def to_dict(self):
        d = asdict(self)
        d["tiers"] = tiers_to_json(self.tiers)
        return d
