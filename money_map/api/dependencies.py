from money_map.api.budget_service import BudgetBundle
from money_map.core.config import ApiSettings
from fastapi import FastAPI
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from functools import lru_cache


@lru_cache(maxsize=1)
def get_budget_bundle() -> BudgetBundle:
    settings = ApiSettings.from_env()
    return BudgetBundle(settings)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    try:
        yield
    finally:
        # Only close a bundle that was actually built.
        if get_budget_bundle.cache_info().currsize:
            bundle = get_budget_bundle()
            await bundle.close()
