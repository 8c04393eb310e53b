"""
tests/test_viz.py
=================

Smoke tests for the plotting helpers; images go to a temp dir.
"""

from datetime import datetime

import matplotlib

matplotlib.use("Agg")

from ringside import viz  # noqa: E402
from ringside.models import PeriodKind  # noqa: E402
from ringside.relationships import MembershipGraph  # noqa: E402


def test_status_summary_writes_png(store, roster, tmp_path):
    kane = roster.wrestler("Kane")
    roster.wrestler("Edge")
    store.open_period(kane, PeriodKind.EMPLOYMENT, datetime(2024, 1, 1))

    out = viz.status_summary(store, datetime(2024, 2, 1), out_path=tmp_path / "status.png")

    assert out.exists() and out.stat().st_size > 0


def test_membership_graph_writes_png(store, roster, tmp_path):
    matt, jeff = roster.wrestler("Matt"), roster.wrestler("Jeff")
    roster.stable("Team Xtreme", roster.tag_team("Hardys", matt, jeff), roster.wrestler("Edge"))

    out = viz.membership_graph(MembershipGraph.from_store(store), out_path=tmp_path / "nested" / "graph.png")

    assert out.exists()
