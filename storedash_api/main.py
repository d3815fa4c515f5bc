from __future__ import annotations

import logging
import math
from functools import lru_cache
from typing import Literal, Optional

import numpy as np
import pandas as pd
from fastapi import FastAPI, Query
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storedash.client import PerformanceApiClient
from storedash.config import get_settings
from storedash.filters import DashboardFilters, normalize_filters
from storedash.fiscal import fiscal_periods
from storedash.metrics_overview import compute_overview
from storedash.metrics_snapshots import compute_weekly_snapshots
from storedash.metrics_trends import compute_trends
from storedash.session import DashboardSession
from storedash_api.schemas import (
    DashboardFiltersModel,
    MetaListResponse,
    MetaStoresResponse,
    StatusResponse,
    StoreModel,
)

settings = get_settings()
logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(title="Store Performance Dashboard API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def get_session() -> DashboardSession:
    return DashboardSession(PerformanceApiClient(settings), settings)


def _loaded_session() -> DashboardSession:
    session = get_session()
    if not session.has_initial_data:
        session.load_initial()
    return session


def _filters_from_model(model: DashboardFiltersModel, session: DashboardSession) -> DashboardFilters:
    raw = model.model_dump()
    return normalize_filters(raw, today=session.today)


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                type(pd.NA): lambda _: None,
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
                pd.Timestamp: lambda ts: ts.isoformat(),
            },
        )
    )


def _error(exc: Exception) -> JSONResponse:
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/meta/stores")
def meta_stores():
    try:
        session = _loaded_session()
        stores = [
            StoreModel(StoreNbr=s.store_nbr, District=s.district, State=s.state, Company=s.company, Royalty=s.royalty)
            for s in session.directory.stores
        ]
        return _json(MetaStoresResponse(stores=stores).model_dump())
    except Exception as exc:
        logger.exception("meta_stores failed")
        return _error(exc)


@app.get("/meta/districts")
def meta_districts():
    try:
        session = _loaded_session()
        return _json(MetaListResponse(values=session.directory.districts()).model_dump())
    except Exception as exc:
        logger.exception("meta_districts failed")
        return _error(exc)


@app.get("/status")
def status():
    try:
        session = get_session()
        last_sources = list(session.result.sources) if session.result is not None else []
        return _json(StatusResponse(**session.status(), last_sources=last_sources).model_dump())
    except Exception as exc:
        logger.exception("status failed")
        return _error(exc)


@app.post("/overview")
def overview(filters: DashboardFiltersModel):
    try:
        session = _loaded_session()
        f = _filters_from_model(filters, session)
        result = session.ensure_result(f)
        return _json(compute_overview(f, result, session.directory))
    except Exception as exc:
        logger.exception("overview failed")
        return _error(exc)


@app.post("/trends")
def trends(filters: DashboardFiltersModel):
    try:
        session = _loaded_session()
        f = _filters_from_model(filters, session)
        if f.enabled_years != session.filters.enabled_years:
            session.set_enabled_years(f.enabled_years)
        return _json(compute_trends(f, session.cache.rows, session.directory, session.today))
    except Exception as exc:
        logger.exception("trends failed")
        return _error(exc)


@app.get("/weekly-snapshots")
def weekly_snapshots(
    week: Optional[str] = Query(default=None),
    sort: str = Query(default="store"),
    direction: Literal["asc", "desc"] = Query(default="asc"),
):
    try:
        session = _loaded_session()
        return _json(compute_weekly_snapshots(session.cache.rows, week=week, sort=sort, direction=direction))
    except Exception as exc:
        logger.exception("weekly_snapshots failed")
        return _error(exc)


@app.post("/refresh")
def refresh():
    try:
        session = get_session()
        session.refresh()
        return _json(session.status())
    except Exception as exc:
        logger.exception("refresh failed")
        return _error(exc)


@app.get("/fiscal/periods")
def periods():
    try:
        return _json(fiscal_periods(get_session().today))
    except Exception as exc:
        logger.exception("fiscal_periods failed")
        return _error(exc)
