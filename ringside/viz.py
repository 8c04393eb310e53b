"""
ringside.viz
============

Minimal plotting helpers used by the seed script and for quick roster
snapshots.  Importing :mod:`ringside` alone never pulls in *matplotlib*;
only this module does.

Outputs are PNGs written to the *images/* folder (created on first
use).  Filenames can be overridden via keyword argument.
"""
from __future__ import annotations

import os
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

import matplotlib.pyplot as plt
import networkx as nx

from .models import EmploymentStatus, EntityType, RosterEntity
from .relationships import MembershipGraph
from .status import derive_employment_status
from .store import RosterStore

# default output dir
_IMG_DIR = Path("images")

_NODE_COLOURS = {
    EntityType.WRESTLER: "#2b9348",
    EntityType.MANAGER: "#8d99ae",
    EntityType.REFEREE: "#adb5bd",
    EntityType.TAG_TEAM: "#e76f51",
    EntityType.STABLE: "#264653",
    EntityType.TITLE: "#e9c46a",
}


def _target(out_path: Optional[str | os.PathLike], default_name: str) -> Path:
    path = Path(out_path) if out_path is not None else _IMG_DIR / default_name
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


# ---------------------------------------------------------------------
# Plot 1 – bar chart of entity counts by derived status
# ---------------------------------------------------------------------
def status_summary(
    store: RosterStore,
    as_of: datetime,
    entities: Optional[Iterable[RosterEntity]] = None,
    out_path: Optional[str | os.PathLike] = None,
) -> Path:
    """
    Generate a bar chart of how many entities are in each employment status.

    Parameters
    ----------
    store : RosterStore
        Where the period histories live.
    as_of : datetime
        Date the statuses are derived for.
    entities : iterable of RosterEntity, optional
        Subset to chart; defaults to every non-deleted entity.
    out_path : str or Path, default='images/status_snapshot.png'
        Where to save the PNG.

    Returns
    -------
    pathlib.Path
        Final image path for convenience.
    """
    roster = list(entities) if entities is not None else store.entities()
    counts = Counter(derive_employment_status(store, e, as_of) for e in roster)
    xs = list(EmploymentStatus)
    ys = [counts[s] for s in xs]

    plt.figure()
    bars = plt.bar([s.name for s in xs], ys, color="#2b9348", edgecolor="#333")
    # add counts on top of each bar
    for rect, cnt in zip(bars, ys):
        plt.text(rect.get_x() + rect.get_width() / 2,
                 cnt + 0.05,
                 str(cnt),
                 ha="center", va="bottom",
                 fontsize=8, color="#333")
    plt.grid(axis="y", linestyle=":", alpha=0.3)
    plt.xticks(rotation=20, fontsize=7)
    plt.title(f"Roster Status ({as_of:%Y-%m-%d})")
    plt.ylabel("Entity Count")
    plt.tight_layout()

    out_path = _target(out_path, "status_snapshot.png")
    plt.savefig(out_path, dpi=120, bbox_inches="tight")
    plt.close()
    return out_path


# ---------------------------------------------------------------------
# Plot 2 – current membership network
# ---------------------------------------------------------------------
def membership_graph(
    mg: MembershipGraph,
    out_path: Optional[str | os.PathLike] = None,
) -> Path:
    """
    Draw a spring-layout graph of composite → member links.

    Node colour encodes the entity type; edge labels show the relation.

    Returns
    -------
    pathlib.Path
        Final image path.
    """
    plt.figure(figsize=(7, 7))
    pos = nx.spring_layout(mg.g, seed=42)

    colours = [_NODE_COLOURS[key[0]] for key in mg.g.nodes()]
    nx.draw_networkx_nodes(mg.g, pos, node_color=colours, node_size=800)
    nx.draw_networkx_labels(mg.g, pos, labels=nx.get_node_attributes(mg.g, "label"), font_size=7)

    nx.draw_networkx_edges(mg.g, pos, arrowstyle="->", arrowsize=15)
    edge_labels = {edge: rel.name.lower() for edge, rel in nx.get_edge_attributes(mg.g, "relation").items()}
    nx.draw_networkx_edge_labels(mg.g, pos, edge_labels=edge_labels, font_size=6)

    plt.title("Roster Memberships")
    plt.axis("off")
    plt.tight_layout()

    out_path = _target(out_path, "memberships.png")
    plt.savefig(out_path, dpi=120, bbox_inches="tight")
    plt.close()
    return out_path
