"""Viability tests — preconditions, weighted aggregation, scorer failures, persistence, routes.

The structured scorer is always faked: unit tests inject an async function,
route tests patch ``rocketmap.routes.viability.score_canvas_viability``.
"""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import json
import uuid
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from rocketmap.constants import BLOCK_TYPES
from rocketmap.database import Base, get_db
from rocketmap.main import app
from rocketmap.schemas.viability_schema import ViabilityBreakdown
from rocketmap.services.auth_utils import create_access_token
from rocketmap.services.viability_engine import (
    ViabilityPreconditionError,
    ViabilityScoringError,
    calculate_viability,
    compute_overall_score,
)

# ---------------------------------------------------------------------------
# Test database setup
# ---------------------------------------------------------------------------
TEST_DATABASE_URL = "sqlite:///./test_viability.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

_user_counter = 0


def _next_username(prefix="viauser"):
    global _user_counter
    _user_counter += 1
    return f"{prefix}_{_user_counter}"


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


client = TestClient(app)


@pytest.fixture(autouse=True)
def setup_db():
    """Create tables before each test, drop after."""
    app.dependency_overrides[get_db] = override_get_db
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    app.dependency_overrides.pop(get_db, None)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SCORER_RESPONSE = {
    "score": 65,
    "breakdown": {"assumptions": 80, "market": 60, "unmet_need": 70},
    "reasoning": "Solid problem, crowded market.",
    "validated_assumptions": [
        {
            "block_type": "value_prop",
            "assumption": "Teams lose hours to manual reconciliation",
            "status": "validated",
            "evidence": "Interviews with 12 finance leads",
        }
    ],
}


def _blocks(text="A reasonably detailed block description", skip=()):
    return [
        SimpleNamespace(block_type=bt, content_bmc=text, content_lean="")
        for bt in BLOCK_TYPES
        if bt not in skip
    ]


def _fake_scorer(response):
    calls = []

    async def scorer(block_texts):
        calls.append(block_texts)
        return response

    return scorer, calls


def _create_user():
    """Create a user directly in DB, return (user_id, token)."""
    from rocketmap.models.user import User

    db = TestingSessionLocal()
    uid = str(uuid.uuid4())
    uname = _next_username()
    db.add(User(id=uid, email=f"{uname}@test.com", username=uname))
    db.commit()
    db.close()
    return uid, create_access_token(uid, f"{uname}@test.com", uname)


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


def _create_canvas(token, block_text="A reasonably detailed block description", skip=()):
    blocks = {bt: {"content_bmc": block_text} for bt in BLOCK_TYPES if bt not in skip}
    res = client.post("/canvas/", json={"title": "Ledger Sync", "blocks": blocks}, headers=_auth(token))
    assert res.status_code == 201, f"Canvas creation failed: {res.text}"
    return res.json()["id"]


# ===================================================================== #
#  Unit tests: aggregation                                               #
# ===================================================================== #

class TestOverallScore:
    def test_weighted_80_60_70(self):
        assert compute_overall_score(ViabilityBreakdown(assumptions=80, market=60, unmet_need=70)) == 71

    def test_rounds_half_up(self):
        # 0.4*51.25 + 0.3*50 + 0.3*50 = 50.5
        assert compute_overall_score(ViabilityBreakdown(assumptions=51.25, market=50, unmet_need=50)) == 51

    def test_bounds(self):
        assert compute_overall_score(ViabilityBreakdown(assumptions=0, market=0, unmet_need=0)) == 0
        assert compute_overall_score(ViabilityBreakdown(assumptions=100, market=100, unmet_need=100)) == 100

    @pytest.mark.parametrize(
        "assumptions, market, unmet_need, expected",
        [(0, 1, 24, 8), (0, 3, 72, 23), (0, 0, 25, 8), (5, 0, 0, 2)],
    )
    def test_exact_halves_round_up(self, assumptions, market, unmet_need, expected):
        # 0.3 * 25 is 7.499999... in binary floating point
        breakdown = ViabilityBreakdown(assumptions=assumptions, market=market, unmet_need=unmet_need)
        assert compute_overall_score(breakdown) == expected


class TestCalculateViability:
    def test_success_persists_once(self):
        scorer, calls = _fake_scorer(SCORER_RESPONSE)
        persisted = []

        data = asyncio.run(calculate_viability(_blocks(), scorer=scorer, persist=persisted.append))

        assert data.score == 71
        assert data.breakdown.market == 60
        assert data.reasoning == "Solid problem, crowded market."
        assert len(data.validated_assumptions) == 1
        assert persisted == [data]
        assert len(calls) == 1
        assert set(calls[0].keys()) == set(BLOCK_TYPES)

    def test_missing_blocks_never_calls_scorer(self):
        scorer, calls = _fake_scorer(SCORER_RESPONSE)
        persisted = []

        with pytest.raises(ViabilityPreconditionError, match="All 9 blocks"):
            asyncio.run(
                calculate_viability(
                    _blocks(skip=("channels",)), scorer=scorer, persist=persisted.append
                )
            )
        assert calls == []
        assert persisted == []

    def test_short_block_rejected(self):
        blocks = _blocks()
        blocks[0].content_bmc = "   too short   "
        scorer, calls = _fake_scorer(SCORER_RESPONSE)

        with pytest.raises(ViabilityPreconditionError, match="at least 10 characters"):
            asyncio.run(calculate_viability(blocks, scorer=scorer, persist=lambda d: None))
        assert calls == []

    def test_lean_content_counts_when_bmc_empty(self):
        blocks = _blocks()
        blocks[0].content_bmc = ""
        blocks[0].content_lean = "Lean canvas text that is long enough"
        scorer, _ = _fake_scorer(SCORER_RESPONSE)

        data = asyncio.run(calculate_viability(blocks, scorer=scorer, persist=lambda d: None))
        assert data.score == 71

    def test_linked_segments_count_toward_customer_segments(self):
        blocks = _blocks()
        segments_block = next(b for b in blocks if b.block_type == "customer_segments")
        segments_block.content_bmc = "SMBs"
        scorer, calls = _fake_scorer(SCORER_RESPONSE)

        with pytest.raises(ViabilityPreconditionError, match="customer_segments"):
            asyncio.run(calculate_viability(blocks, scorer=scorer, persist=lambda d: None))
        assert calls == []

        segments_block.segments = [
            SimpleNamespace(name="Bookkeepers", description="", demographics="Solo firms", estimated_size="  "),
            SimpleNamespace(name="CFOs", description=None),
        ]
        asyncio.run(calculate_viability(blocks, scorer=scorer, persist=lambda d: None))
        assert calls[0]["customer_segments"] == "SMBs\nBookkeepers | Solo firms \nCFOs"

    def test_segments_ignored_on_other_blocks(self):
        blocks = _blocks()
        channels = next(b for b in blocks if b.block_type == "channels")
        channels.content_bmc = "Ads"
        channels.segments = [SimpleNamespace(name="A long segment name that would pass")]
        scorer, _ = _fake_scorer(SCORER_RESPONSE)

        with pytest.raises(ViabilityPreconditionError, match="channels"):
            asyncio.run(calculate_viability(blocks, scorer=scorer, persist=lambda d: None))

    def test_malformed_response_persists_nothing(self):
        scorer, _ = _fake_scorer({"score": 50, "breakdown": {"market": 60}, "reasoning": "x"})
        persisted = []

        with pytest.raises(ViabilityScoringError):
            asyncio.run(calculate_viability(_blocks(), scorer=scorer, persist=persisted.append))
        assert persisted == []

    def test_out_of_range_subscore_is_malformed(self):
        bad = json.loads(json.dumps(SCORER_RESPONSE))
        bad["breakdown"]["market"] = 140
        scorer, _ = _fake_scorer(bad)

        with pytest.raises(ViabilityScoringError):
            asyncio.run(calculate_viability(_blocks(), scorer=scorer, persist=lambda d: None))

    def test_scorer_none_is_failure(self):
        scorer, _ = _fake_scorer(None)
        with pytest.raises(ViabilityScoringError):
            asyncio.run(calculate_viability(_blocks(), scorer=scorer, persist=lambda d: None))

    def test_scorer_exception_is_failure(self):
        async def scorer(block_texts):
            raise EnvironmentError("OPENAI_API_KEY environment variable not set")

        with pytest.raises(ViabilityScoringError):
            asyncio.run(calculate_viability(_blocks(), scorer=scorer, persist=lambda d: None))


# ===================================================================== #
#  Route tests                                                            #
# ===================================================================== #

class TestViabilityRoutes:
    def test_post_viability_success(self):
        _, token = _create_user()
        canvas_id = _create_canvas(token)

        with patch(
            "rocketmap.routes.viability.score_canvas_viability",
            new=AsyncMock(return_value=SCORER_RESPONSE),
        ) as scorer:
            res = client.post(f"/canvas/{canvas_id}/viability", headers=_auth(token))

        assert res.status_code == 200, res.text
        body = res.json()["viability"]
        assert body["score"] == 71
        assert body["breakdown"] == {"assumptions": 80.0, "market": 60.0, "unmet_need": 70.0}
        assert body["calculated_at"]
        scorer.assert_awaited_once()

        stored = client.get(f"/canvas/{canvas_id}/viability", headers=_auth(token))
        assert stored.status_code == 200
        assert stored.json()["viability"]["score"] == 71

        canvas = client.get(f"/canvas/{canvas_id}", headers=_auth(token)).json()
        assert canvas["viability_score"] == 71
        assert canvas["viability"]["reasoning"] == "Solid problem, crowded market."

    def test_post_viability_missing_block_returns_400(self):
        _, token = _create_user()
        canvas_id = _create_canvas(token, skip=("revenue_streams",))

        with patch(
            "rocketmap.routes.viability.score_canvas_viability",
            new=AsyncMock(return_value=SCORER_RESPONSE),
        ) as scorer:
            res = client.post(f"/canvas/{canvas_id}/viability", headers=_auth(token))

        assert res.status_code == 400
        assert "revenue_streams" in res.json()["detail"]
        scorer.assert_not_awaited()

    def test_post_viability_short_block_returns_400(self):
        _, token = _create_user()
        canvas_id = _create_canvas(token, block_text="tiny")

        with patch(
            "rocketmap.routes.viability.score_canvas_viability",
            new=AsyncMock(return_value=SCORER_RESPONSE),
        ):
            res = client.post(f"/canvas/{canvas_id}/viability", headers=_auth(token))

        assert res.status_code == 400

    def test_post_viability_malformed_returns_500_and_keeps_state(self):
        _, token = _create_user()
        canvas_id = _create_canvas(token)

        with patch(
            "rocketmap.routes.viability.score_canvas_viability",
            new=AsyncMock(return_value={"reasoning": "no scores"}),
        ):
            res = client.post(f"/canvas/{canvas_id}/viability", headers=_auth(token))

        assert res.status_code == 500
        assert res.json()["detail"] == "Failed to calculate viability"

        canvas = client.get(f"/canvas/{canvas_id}", headers=_auth(token)).json()
        assert canvas["viability_score"] is None
        assert canvas["viability"] is None

    def test_get_viability_never_calculated_returns_404(self):
        _, token = _create_user()
        canvas_id = _create_canvas(token)
        res = client.get(f"/canvas/{canvas_id}/viability", headers=_auth(token))
        assert res.status_code == 404

    def test_viability_requires_ownership(self):
        _, owner_token = _create_user()
        _, other_token = _create_user()
        canvas_id = _create_canvas(owner_token)

        res = client.post(f"/canvas/{canvas_id}/viability", headers=_auth(other_token))
        assert res.status_code == 403

    def test_viability_requires_auth(self):
        res = client.post(f"/canvas/{uuid.uuid4()}/viability")
        assert res.status_code == 401

    def test_second_calculation_replaces_first(self):
        _, token = _create_user()
        canvas_id = _create_canvas(token)
        second = {
            **SCORER_RESPONSE,
            "breakdown": {"assumptions": 40, "market": 50, "unmet_need": 30},
            "reasoning": "Pricing evidence fell apart.",
        }

        with patch(
            "rocketmap.routes.viability.score_canvas_viability",
            new=AsyncMock(side_effect=[SCORER_RESPONSE, second]),
        ):
            first_res = client.post(f"/canvas/{canvas_id}/viability", headers=_auth(token))
            second_res = client.post(f"/canvas/{canvas_id}/viability", headers=_auth(token))

        assert first_res.status_code == 200
        assert second_res.status_code == 200
        # 0.4*40 + 0.3*50 + 0.3*30 = 40
        assert second_res.json()["viability"]["score"] == 40

        stored = client.get(f"/canvas/{canvas_id}/viability", headers=_auth(token)).json()["viability"]
        assert stored["score"] == 40
        assert stored["reasoning"] == "Pricing evidence fell apart."
        assert stored["breakdown"]["assumptions"] == 40.0

        canvas = client.get(f"/canvas/{canvas_id}", headers=_auth(token)).json()
        assert canvas["viability_score"] == 40

    def test_malformed_after_success_keeps_previous_record(self):
        _, token = _create_user()
        canvas_id = _create_canvas(token)

        with patch(
            "rocketmap.routes.viability.score_canvas_viability",
            new=AsyncMock(side_effect=[SCORER_RESPONSE, {"reasoning": "no scores"}]),
        ):
            ok = client.post(f"/canvas/{canvas_id}/viability", headers=_auth(token))
            failed = client.post(f"/canvas/{canvas_id}/viability", headers=_auth(token))

        assert ok.status_code == 200
        assert failed.status_code == 500

        stored = client.get(f"/canvas/{canvas_id}/viability", headers=_auth(token)).json()["viability"]
        assert stored["score"] == 71
        assert stored["reasoning"] == "Solid problem, crowded market."

        canvas = client.get(f"/canvas/{canvas_id}", headers=_auth(token)).json()
        assert canvas["viability_score"] == 71
