"""Prometheus scrape configuration and dashboard queries for a chain."""

from __future__ import annotations

import os
from os import PathLike
from typing import Any, Iterable
from urllib.parse import quote_plus, urlsplit

import yaml

from .codec import id_to_string

SCRAPE_INTERVAL = "15s"
EVALUATION_INTERVAL = "15s"
JOB_NAME = "prometheus"
METRICS_PATH = "/ext/metrics"
DASHBOARD_BASE = "http://localhost:9090/graph"
FILE_MODE = 0o600

PANEL_LABELS = (
    "blocks processing",
    "blocks accepted per second",
    "blocks rejected per second",
    "transactions per second",
    "state operations per second",
    "state changes per second",
    "root calcuation wait (ms/s)",
    "signature verification wait (ms/s)",
    "mempool size",
    "CPU usage",
    "consensus engine processing (ms/s)",
)

_HANDLER_METRICS = (
    "chits",
    "notify",
    "get",
    "push_query",
    "put",
    "pull_query",
    "query_failed",
)


def endpoint_from_uri(uri: str) -> str:
    """The ``host:port`` part of a node URI."""
    parts = urlsplit(uri)
    host = parts.hostname
    if not host:
        raise ValueError(f"no host in uri {uri!r}")
    port = parts.port
    return f"{host}:{'' if port is None else port}"


def prometheus_config(endpoints: Iterable[str]) -> dict[str, Any]:
    """A scrape configuration that polls every endpoint's metrics."""
    return {
        "global": {
            "scrape_interval": SCRAPE_INTERVAL,
            "evaluation_interval": EVALUATION_INTERVAL,
        },
        "scrape_configs": [
            {
                "job_name": JOB_NAME,
                "static_configs": [{"targets": list(endpoints)}],
                "metrics_path": METRICS_PATH,
            }
        ],
    }


def _write_private(path: str | PathLike[str], data: bytes) -> None:
    fd = os.open(os.fspath(path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
    with os.fdopen(fd, "wb") as handle:
        handle.write(data)


def write_prometheus_config(path: str | PathLike[str], endpoints: Iterable[str]) -> str:
    """Write the scrape configuration as YAML to ``path`` and return the text."""
    text = yaml.safe_dump(
        prometheus_config(endpoints), sort_keys=False, default_flow_style=False
    )
    _write_private(path, text.encode())
    return text


def dashboard_panels(chain_id: bytes | str) -> list[str]:
    """Queries for the chain's dashboard, in the order of ``PANEL_LABELS``."""
    cid = chain_id if isinstance(chain_id, str) else id_to_string(chain_id)
    consensus = " + ".join(
        f"increase(avalanche_{cid}_handler_{name}_sum[30s])/1000000/30"
        for name in _HANDLER_METRICS
    )
    return [
        f"avalanche_{cid}_blks_processing",
        f"increase(avalanche_{cid}_blks_accepted_count[30s])/30",
        f"increase(avalanche_{cid}_blks_rejected_count[30s])/30",
        f"increase(avalanche_{cid}_vm_hyper_sdk_vm_txs_accepted[30s])/30",
        f"increase(avalanche_{cid}_vm_hyper_sdk_chain_state_operations[30s])/30",
        f"increase(avalanche_{cid}_vm_hyper_sdk_chain_state_changes[30s])/30",
        f"increase(avalanche_{cid}_vm_hyper_sdk_chain_root_calculated_sum[30s])/1000000/30",
        f"increase(avalanche_{cid}_vm_hyper_sdk_chain_wait_signatures_sum[30s])/1000000/30",
        f"avalanche_{cid}_vm_hyper_sdk_chain_mempool_size",
        "avalanche_resource_tracker_cpu_usage",
        consensus,
    ]


def dashboard_url(panels: Iterable[str]) -> str:
    """A dashboard link showing every panel, numbered in order.

    Parameters are encoded by hand so the panels keep their numeric order.
    """
    url = DASHBOARD_BASE
    for index, panel in enumerate(panels):
        separator = "?" if index == 0 else "&"
        url += f"{separator}g{index}.expr={quote_plus(panel, safe='')}&g{index}.tab=0"
    return url