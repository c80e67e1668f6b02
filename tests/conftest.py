import pandas as pd
import pytest

from cashflow_engine.config.settings import saved_settings
from cashflow_engine.fixings import FixingStore


VAL_DATE = pd.Timestamp("2026-02-13")


@pytest.fixture(autouse=True)
def evaluation_date():
    # Friday, so the reference date is itself a valid fixing date
    with saved_settings(evaluation_date=VAL_DATE) as s:
        yield s.evaluation_date


@pytest.fixture
def store():
    return FixingStore()
