import os

import pytest

os.environ.setdefault("BACKGROUND_REFRESH", "false")

from live_premiums.services.nse import UpstreamError


def make_row(strike, expiry, ce=None, pe=None):
    row = {"strikePrice": strike, "expiryDate": expiry}
    if ce is not None:
        row["CE"] = {"strikePrice": strike, "expiryDate": expiry, "lastPrice": ce}
    if pe is not None:
        row["PE"] = {"strikePrice": strike, "expiryDate": expiry, "lastPrice": pe}
    return row


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeFetcher:
    """Returns queued snapshots; an exception in the queue is raised instead."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    def fetch(self):
        self.calls += 1
        if not self.results:
            raise UpstreamError("no more results")
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def chain():
    return {
        "records": {
            "data": [make_row(26500, "27-Feb-2025", ce=1.0, pe=2.0)],
        },
        "filtered": {
            "data": [
                make_row(25900, "27-Feb-2025", ce=310.0, pe=95.5),
                make_row(26500, "27-Mar-2025", ce=210.0, pe=400.0),
                make_row(26500, "27-Feb-2025", ce=120.25, pe=610.0),
                make_row(27500, "27-Feb-2025", ce=8.4, pe=1500.0),
            ],
        },
    }


@pytest.fixture
def clock():
    return FakeClock()
