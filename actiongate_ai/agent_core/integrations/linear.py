from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from .errors import LinearApiError, LinearNotFoundError
from .models import TrackerIssue

_ISSUE_FIELDS = "id identifier title description url priority state{name} assignee{name} labels{nodes{name}}"


class LinearClient:
    """
    Thin async GraphQL client for the Linear API.

    Responsibilities:
    - search_issues / get_issue
    - create_issue / update_issue / delete_issue
    - add_comment

    Team, member and workflow state lookups are resolved by name against the
    configured team key and cached for the lifetime of the client.
    """

    def __init__(
        self,
        api_key: Optional[str],
        *,
        team_key: str,
        api_url: str = "https://api.linear.app/graphql",
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.team_key = team_key
        self.api_url = api_url
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._team_id: Optional[str] = None
        self._members: Optional[List[Dict[str, Any]]] = None
        self._states: Optional[List[Dict[str, Any]]] = None
        self._logger = logging.getLogger(__name__)

    @property
    def has_key(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = self.api_key
        return headers

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _query(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise LinearApiError("LINEAR_API_KEY is not configured")
        try:
            r = await self._client.post(
                self.api_url,
                headers=self._headers(),
                json={"query": query, "variables": variables},
            )
            r.raise_for_status()
        except httpx.TimeoutException as e:
            raise LinearApiError(f"Linear API timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise LinearApiError(
                f"Linear API {e.response.status_code}",
                status_code=e.response.status_code,
                details=e.response.text,
            ) from e
        except httpx.HTTPError as e:
            raise LinearApiError(f"Linear API request failed: {e}") from e

        payload = r.json()
        errors = payload.get("errors") or []
        if errors:
            messages = "; ".join(str(err.get("message", err)) for err in errors)
            raise LinearApiError(f"Linear GQL: {messages}", status_code=r.status_code, details=errors)
        data = payload.get("data")
        if not data:
            raise LinearApiError("Linear API empty response", status_code=r.status_code)
        return data

    @staticmethod
    def _parse_issue(node: Dict[str, Any]) -> TrackerIssue:
        return TrackerIssue(
            id=node["id"],
            identifier=node.get("identifier") or node["id"],
            title=node.get("title") or "",
            description=node.get("description"),
            url=node.get("url"),
            priority=node.get("priority"),
            status=(node.get("state") or {}).get("name"),
            assignee_name=(node.get("assignee") or {}).get("name"),
            labels=[label["name"] for label in (node.get("labels") or {}).get("nodes", [])],
        )

    async def _team(self) -> Dict[str, Any]:
        data = await self._query(
            "query($teamKey:String!){teams(filter:{key:{eq:$teamKey}},first:1)"
            "{nodes{id members{nodes{id name displayName}} states{nodes{id name type}}}}}",
            {"teamKey": self.team_key},
        )
        nodes = data["teams"]["nodes"]
        if not nodes:
            raise LinearNotFoundError("team", self.team_key)
        return nodes[0]

    async def _load_team(self) -> None:
        if self._team_id is not None:
            return
        team = await self._team()
        self._members = team["members"]["nodes"]
        self._states = team["states"]["nodes"]
        self._team_id = team["id"]
        self._logger.debug(
            "LinearClient: loaded team %s (%d members, %d states)", self.team_key, len(self._members), len(self._states)
        )

    async def find_user_id(self, name: str) -> str:
        await self._load_team()
        needle = name.strip().lower()
        for member in self._members or []:
            if needle in {str(member.get("name", "")).lower(), str(member.get("displayName", "")).lower()}:
                return member["id"]
        raise LinearNotFoundError("user", name)

    async def find_state_id(self, status: str) -> str:
        await self._load_team()
        needle = status.strip().lower()
        for state in self._states or []:
            if str(state.get("name", "")).lower() == needle:
                return state["id"]
        raise LinearNotFoundError("workflow state", status)

    async def search_issues(self, query: str, limit: int = 10) -> List[TrackerIssue]:
        self._logger.debug("LinearClient.search_issues: query=%r limit=%d", query, limit)
        data = await self._query(
            "query($teamKey:String!,$q:String!,$first:Int!){issues(first:$first,orderBy:updatedAt,"
            "filter:{team:{key:{eq:$teamKey}},or:[{title:{containsIgnoreCase:$q}},"
            "{description:{containsIgnoreCase:$q}}]})"
            f"{{nodes{{{_ISSUE_FIELDS}}}}}}}",
            {"teamKey": self.team_key, "q": query, "first": limit},
        )
        return [self._parse_issue(node) for node in data["issues"]["nodes"]]

    async def get_issue(self, issue_id: str) -> Optional[TrackerIssue]:
        try:
            data = await self._query(f"query($id:String!){{issue(id:$id){{{_ISSUE_FIELDS}}}}}", {"id": issue_id})
        except LinearApiError as e:
            if "not found" in str(e).lower():
                return None
            raise
        node = data.get("issue")
        return self._parse_issue(node) if node else None

    async def create_issue(
        self,
        *,
        title: str,
        description: Optional[str] = None,
        priority: Optional[int] = None,
        assignee_name: Optional[str] = None,
        label_names: Optional[List[str]] = None,
    ) -> TrackerIssue:
        await self._load_team()
        payload: Dict[str, Any] = {"teamId": self._team_id, "title": title}
        if description is not None:
            payload["description"] = description
        if priority is not None:
            payload["priority"] = priority
        if assignee_name:
            payload["assigneeId"] = await self.find_user_id(assignee_name)
        if label_names:
            payload["labelIds"] = await self._label_ids(label_names)

        self._logger.debug("LinearClient.create_issue: title=%r", title)
        data = await self._query(
            f"mutation($input:IssueCreateInput!){{issueCreate(input:$input){{success issue{{{_ISSUE_FIELDS}}}}}}}",
            {"input": payload},
        )
        result = data["issueCreate"]
        if not result.get("success") or not result.get("issue"):
            raise LinearApiError("Linear issueCreate failed", details=result)
        return self._parse_issue(result["issue"])

    async def update_issue(
        self,
        issue_id: str,
        *,
        title: Optional[str] = None,
        description: Optional[str] = None,
        priority: Optional[int] = None,
        assignee_name: Optional[str] = None,
        status: Optional[str] = None,
    ) -> TrackerIssue:
        payload: Dict[str, Any] = {}
        if title is not None:
            payload["title"] = title
        if description is not None:
            payload["description"] = description
        if priority is not None:
            payload["priority"] = priority
        if assignee_name:
            payload["assigneeId"] = await self.find_user_id(assignee_name)
        if status:
            payload["stateId"] = await self.find_state_id(status)

        self._logger.debug("LinearClient.update_issue: id=%s fields=%s", issue_id, sorted(payload))
        data = await self._query(
            "mutation($id:String!,$input:IssueUpdateInput!)"
            f"{{issueUpdate(id:$id,input:$input){{success issue{{{_ISSUE_FIELDS}}}}}}}",
            {"id": issue_id, "input": payload},
        )
        result = data["issueUpdate"]
        if not result.get("success") or not result.get("issue"):
            raise LinearApiError(f"Linear issueUpdate failed for {issue_id}", details=result)
        return self._parse_issue(result["issue"])

    async def delete_issue(self, issue_id: str) -> bool:
        data = await self._query("mutation($id:String!){issueDelete(id:$id){success}}", {"id": issue_id})
        return bool(data["issueDelete"]["success"])

    async def add_comment(self, issue_id: str, body: str) -> Dict[str, Any]:
        data = await self._query(
            "mutation($input:CommentCreateInput!){commentCreate(input:$input){success comment{id url}}}",
            {"input": {"issueId": issue_id, "body": body}},
        )
        result = data["commentCreate"]
        if not result.get("success"):
            raise LinearApiError("Linear commentCreate failed", details=result)
        return {"id": result["comment"]["id"], "url": result["comment"].get("url")}

    async def _label_ids(self, names: List[str]) -> List[str]:
        data = await self._query(
            "query($names:[String!]!){issueLabels(filter:{name:{in:$names}}){nodes{id name}}}",
            {"names": names},
        )
        return [node["id"] for node in data["issueLabels"]["nodes"]]
