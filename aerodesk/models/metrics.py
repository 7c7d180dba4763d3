"""
Dashboard KPI models for the AeroDesk application.
"""

from datetime import datetime
from typing import Dict
from pydantic import BaseModel, Field, ConfigDict

from .enums import KPIStatus


class KPIModel(BaseModel):
    """Single key performance indicator."""
    model_config = ConfigDict(from_attributes=True)

    name: str = Field(..., description="Display name")
    value: float = Field(..., description="Current value")
    unit: str = Field(..., description="Unit of measure")
    description: str = Field(..., description="What the KPI measures")
    status: KPIStatus = Field(default=KPIStatus.NEUTRAL, description="Traffic-light rating")


class DashboardSnapshotModel(BaseModel):
    """All KPIs computed at one instant."""

    generated_at: datetime = Field(default_factory=datetime.now)
    kpis: Dict[str, KPIModel] = Field(default_factory=dict)

    def summary(self) -> str:
        return " | ".join(f"{kpi.name}: {kpi.value:g} {kpi.unit}" for kpi in self.kpis.values())
