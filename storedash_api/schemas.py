from __future__ import annotations

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field


class EnabledYearsModel(BaseModel):
    two_years_ago: bool = False
    three_years_ago: bool = False
    four_years_ago: bool = False


class DashboardFiltersModel(BaseModel):
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    store: str = ""
    district: str = ""
    enabled_years: EnabledYearsModel = Field(default_factory=EnabledYearsModel)
    top_n: int = 5


class StoreModel(BaseModel):
    StoreNbr: str
    District: str = ""
    State: str = ""
    Company: str = ""
    Royalty: float = 0.0


class MetaStoresResponse(BaseModel):
    stores: List[StoreModel] = Field(default_factory=list)


class MetaListResponse(BaseModel):
    values: List[str] = Field(default_factory=list)


class StatusResponse(BaseModel):
    loading: bool
    refreshing: bool
    has_initial_data: bool
    has_historical_data: bool
    yearly_charts_loading: bool
    cache_populated: bool
    snapshot_count: int = 0
    store_count: int = 0
    loaded_years: List[int] = Field(default_factory=list)
    last_sources: List[str] = Field(default_factory=list)
