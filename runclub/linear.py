"""Minimal Linear GraphQL client for filing feedback issues.

Every failure is raised as :class:`~runclub.errors.IntegrationError`; the
feedback module decides whether that is fatal.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import requests

from runclub.errors import IntegrationError

log = logging.getLogger(__name__)

LINEAR_API_URL = "https://api.linear.app/graphql"

TEAMS_QUERY = """
query Teams($teamKey: String!) {
  teams(filter: { key: { eq: $teamKey } }) {
    nodes { id key }
  }
}
"""

TEAM_STATES_QUERY = """
query TeamStates($teamId: String!) {
  team(id: $teamId) {
    states {
      nodes { id name }
    }
  }
}
"""

LABELS_QUERY = """
query Labels($teamId: ID!, $labelName: String!) {
  issueLabels(filter: { team: { id: { eq: $teamId } }, name: { eq: $labelName } }) {
    nodes { id name }
  }
}
"""

CREATE_ISSUE_MUTATION = """
mutation CreateIssue($input: IssueCreateInput!) {
  issueCreate(input: $input) {
    success
    issue { id url }
  }
}
"""


def _require_env(name: str) -> str:
    value = os.environ.get(name)
    if not value:
        raise IntegrationError(f"Missing required env var: {name}")
    return value


def linear_graphql(query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
    """POST a GraphQL document and return its ``data`` object."""
    api_key = _require_env("LINEAR_API_KEY")
    try:
        resp = requests.post(
            LINEAR_API_URL,
            json={"query": query, "variables": variables or {}},
            headers={"Authorization": api_key, "Content-Type": "application/json"},
            timeout=30,
        )
    except requests.RequestException as e:
        raise IntegrationError(f"Linear API request failed: {e}") from e

    if not resp.ok:
        detail = f" - {resp.text}" if resp.text else ""
        raise IntegrationError(f"Linear API request failed: {resp.status_code} {resp.reason}{detail}")

    try:
        payload = resp.json()
    except ValueError as e:
        raise IntegrationError("Linear API returned invalid JSON") from e

    if payload.get("errors"):
        raise IntegrationError("; ".join(err.get("message", "") for err in payload["errors"]))
    if not payload.get("data"):
        raise IntegrationError("Linear API returned no data")
    return payload["data"]


def get_team_id_by_key(team_key: str) -> str:
    nodes = linear_graphql(TEAMS_QUERY, {"teamKey": team_key})["teams"]["nodes"]
    if not nodes:
        raise IntegrationError(f"Linear team not found for key: {team_key}")
    return nodes[0]["id"]


def get_state_id_by_name(team_id: str, state_name: str) -> str | None:
    team = linear_graphql(TEAM_STATES_QUERY, {"teamId": team_id}).get("team") or {}
    for state in team.get("states", {}).get("nodes", []):
        if state["name"].lower() == state_name.lower():
            return state["id"]
    return None


def get_label_id_by_name(team_id: str, label_name: str) -> str | None:
    nodes = linear_graphql(LABELS_QUERY, {"teamId": team_id, "labelName": label_name})["issueLabels"]["nodes"]
    return nodes[0]["id"] if nodes else None


def create_linear_issue(
    team_key: str,
    title: str,
    description: str,
    label_name: str | None = None,
    priority: int = 3,
    state_name: str | None = None,
) -> dict[str, str]:
    """Create an issue and return ``{"id", "url"}``.

    Label and workflow state are resolved by name and silently omitted when
    the team doesn't have them.
    """
    team_id = get_team_id_by_key(team_key)
    label_id = get_label_id_by_name(team_id, label_name) if label_name else None
    state_id = get_state_id_by_name(team_id, state_name) if state_name else None

    issue_input: dict[str, Any] = {
        "teamId": team_id,
        "title": title,
        "description": description,
        "priority": priority,
    }
    if label_id:
        issue_input["labelIds"] = [label_id]
    if state_id:
        issue_input["stateId"] = state_id

    result = linear_graphql(CREATE_ISSUE_MUTATION, {"input": issue_input})["issueCreate"]
    if not result.get("success") or not result.get("issue"):
        raise IntegrationError("Linear issue creation failed")
    log.info("Created Linear issue %s", result["issue"]["url"])
    return {"id": result["issue"]["id"], "url": result["issue"]["url"]}
