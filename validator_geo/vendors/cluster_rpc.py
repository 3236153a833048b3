"""Client utilities for the cluster JSON-RPC endpoint."""

import logging
from typing import Any, Dict, List, Optional

import requests

from validator_geo.core.config import get_settings
from validator_geo.etl.transform import parse_gossip_address
from validator_geo.models import CandidateEntity

logger = logging.getLogger(__name__)
_SESSION = requests.Session()


class UpstreamUnavailable(RuntimeError):
    """Raised when the cluster RPC endpoint fails or returns malformed data."""


def rpc_call(method: str, params: Optional[List[Any]] = None, rpc_url: Optional[str] = None) -> Any:
    settings = get_settings()
    url = rpc_url or settings.rpc_url
    body = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params or []}
    try:
        response = _SESSION.post(url, json=body, timeout=settings.request_timeout)
        response.raise_for_status()
        payload = response.json()
    except (requests.RequestException, ValueError) as exc:
        logger.error("%s failed against %s: %s", method, url, exc)
        raise UpstreamUnavailable(f"{method} failed: {exc}") from exc

    if not isinstance(payload, dict):
        raise UpstreamUnavailable(f"{method} returned a non-object payload")
    if payload.get("error"):
        error = payload["error"]
        message = error.get("message") if isinstance(error, dict) else error
        logger.error("%s returned an RPC error: %s", method, message)
        raise UpstreamUnavailable(f"{method} returned an RPC error: {message}")
    if "result" not in payload:
        raise UpstreamUnavailable(f"{method} response has no result")
    return payload["result"]


def get_cluster_nodes(rpc_url: Optional[str] = None) -> List[Dict[str, Any]]:
    result = rpc_call("getClusterNodes", rpc_url=rpc_url)
    if not isinstance(result, list):
        raise UpstreamUnavailable("getClusterNodes result is not a list")
    return result


def get_vote_accounts(rpc_url: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
    result = rpc_call("getVoteAccounts", rpc_url=rpc_url)
    if not isinstance(result, dict):
        raise UpstreamUnavailable("getVoteAccounts result is not an object")
    # Some gateways label the current set "active".
    current = result.get("current", result.get("active"))
    delinquent = result.get("delinquent")
    if not isinstance(current, list) or not isinstance(delinquent, list):
        raise UpstreamUnavailable("getVoteAccounts result is missing current/delinquent lists")
    return {"current": current, "delinquent": delinquent}


def _optional_str(entry: Dict[str, Any], key: str, method: str) -> Optional[str]:
    value = entry.get(key)
    if value is not None and not isinstance(value, str):
        raise UpstreamUnavailable(f"{method} returned a non-string {key}: {value!r}")
    return value


def build_vote_lookup(vote_accounts: Dict[str, List[Dict[str, Any]]]) -> Dict[str, str]:
    """Map node identity to vote identity across current and delinquent accounts."""
    lookup: Dict[str, str] = {}
    for account in vote_accounts["current"] + vote_accounts["delinquent"]:
        if not isinstance(account, dict):
            continue
        node = _optional_str(account, "nodePubkey", "getVoteAccounts")
        vote = _optional_str(account, "votePubkey", "getVoteAccounts")
        if node and vote:
            lookup[node] = vote
    return lookup


def list_candidates(rpc_url: Optional[str] = None) -> List[CandidateEntity]:
    nodes = get_cluster_nodes(rpc_url)
    node_to_vote = build_vote_lookup(get_vote_accounts(rpc_url))
    logger.debug("Cluster reports %d nodes and %d vote accounts", len(nodes), len(node_to_vote))

    candidates: List[CandidateEntity] = []
    for node in nodes:
        if not isinstance(node, dict):
            continue
        identity = _optional_str(node, "pubkey", "getClusterNodes")
        gossip = _optional_str(node, "gossip", "getClusterNodes")
        vote = node_to_vote.get(identity) if identity else None
        address = parse_gossip_address(gossip)
        if not vote or not address:
            continue
        candidates.append(CandidateEntity(node_identity=identity, vote_identity=vote, address=address))
    return candidates
