"""GitLab REST API v4 provider."""

import logging
import re
from urllib.parse import quote, urlparse

from gitjira.cache import AsyncCache
from gitjira.diff import parse_file_diff
from gitjira.errors import NoCloseMatch
from gitjira.matching import LENIENT_FREEFORM, levenshtein, normalize
from gitjira.models import (
    Discussion,
    FileDiff,
    GitLabProject,
    Member,
    MergeRequestDetails,
    MergeRequestSummary,
    Note,
    Position,
    ReviewFeedback,
)
from gitjira.providers.base import RestProvider
from gitjira.settings import GitJiraSettings

logger = logging.getLogger(__name__)

_MR_PATH = re.compile(r"^/(.+)/-/merge_requests/(\d+)")


def _encode(project_path: str) -> str:
    return quote(project_path, safe="")


def _note_from_node(node: dict) -> Note:
    author = node.get("author") or {}
    position = node.get("position")
    return Note(
        id=node["id"],
        body=node.get("body", ""),
        author_name=author.get("name"),
        author_username=author.get("username", ""),
        system=node.get("system", False),
        position=Position.model_validate(position) if position and position.get("base_sha") else None,
    )


def _discussion_from_node(node: dict) -> Discussion:
    return Discussion(
        id=node["id"],
        notes=[_note_from_node(n) for n in node.get("notes", [])],
        individual_note=node.get("individual_note", False),
    )


def _mr_summary_from_node(node: dict) -> MergeRequestSummary:
    author = node.get("author") or {}
    return MergeRequestSummary(
        id=node["id"],
        iid=node["iid"],
        title=node["title"],
        author_name=author.get("name"),
        author_username=author.get("username", ""),
        state=node.get("state"),
        updated_at=node.get("updated_at"),
        web_url=node["web_url"],
    )


def _project_from_node(node: dict) -> GitLabProject:
    return GitLabProject(
        id=node["id"],
        name=node["name"],
        name_with_namespace=node.get("name_with_namespace", node["name"]),
        path_with_namespace=node["path_with_namespace"],
        last_activity_at=node.get("last_activity_at"),
    )


def _member_from_node(node: dict) -> Member:
    return Member(
        id=node["id"],
        username=node["username"],
        name=node.get("name", node["username"]),
        state=node.get("state"),
        access_level=node.get("access_level"),
        web_url=node.get("web_url"),
    )


def existing_feedback(discussions: list[Discussion]) -> list[ReviewFeedback]:
    """Positioned notes already on the merge request."""
    return [
        ReviewFeedback(
            id=str(note.id),
            line_number=note.position.new_line or note.position.old_line,
            file_path=note.position.new_path or note.position.old_path,
            description=note.body,
            position=note.position,
        )
        for discussion in discussions
        for note in discussion.notes
        if note.position
    ]


class GitLabProvider(RestProvider):
    service = "GitLab"

    def __init__(self, settings: GitJiraSettings) -> None:
        gitlab_url, token = settings.gitlab_url, settings.gitlab_access_token
        if not (gitlab_url and token):
            raise RuntimeError("GITLAB_URL and GITLAB_ACCESS_TOKEN are required")
        self.gitlab_url = gitlab_url.rstrip("/")
        super().__init__(
            f"{self.gitlab_url}/api/v4",
            headers={
                "Private-Token": token.get_secret_value(),
                "Content-Type": "application/json",
            },
            timeout=settings.http_timeout,
        )
        self._projects: AsyncCache[list[GitLabProject]] = AsyncCache("gitlab projects", ttl=settings.project_cache_ttl)

    def parse_mr_url(self, mr_url: str) -> tuple[str, int]:
        """Split ``https://host/group/project/-/merge_requests/42`` into (project path, iid).

        The URL must point at the configured GitLab instance.
        """
        url = urlparse(mr_url)
        base = urlparse(self.gitlab_url)
        if (url.scheme, url.netloc) != (base.scheme, base.netloc):
            raise ValueError(f"MR URL is not from the configured GitLab instance: {self.gitlab_url}")
        match = _MR_PATH.match(url.path)
        if not match:
            raise ValueError(f"Invalid GitLab MR URL format: {mr_url}")
        return match.group(1), int(match.group(2))

    def _mr_path(self, project_path: str, mr_iid: int) -> str:
        return f"/projects/{_encode(project_path)}/merge_requests/{mr_iid}"

    # -- merge requests -------------------------------------------------------

    async def get_merge_request(self, project_path: str, mr_iid: int) -> MergeRequestDetails:
        base = self._mr_path(project_path, mr_iid)
        mr = await self._get(base)
        changes = await self._get(f"{base}/changes")
        discussions = await self.get_discussions(project_path, mr_iid)

        file_diffs = [
            FileDiff(
                old_path=c["old_path"],
                new_path=c["new_path"],
                new_file=c.get("new_file", False),
                deleted_file=c.get("deleted_file", False),
                renamed_file=c.get("renamed_file", False),
                diff=c.get("diff", ""),
            )
            for c in changes.get("changes", [])
        ]
        refs = mr.get("diff_refs") or {}
        return MergeRequestDetails(
            project_path=mr.get("references", {}).get("full", "").split("!")[0] or project_path,
            mr_iid=mr["iid"],
            project_id=mr["project_id"],
            title=mr["title"],
            author_name=(mr.get("author") or {}).get("name", ""),
            web_url=mr["web_url"],
            source_branch=mr["source_branch"],
            target_branch=mr["target_branch"],
            base_sha=refs.get("base_sha"),
            start_sha=refs.get("start_sha"),
            head_sha=refs.get("head_sha"),
            file_diffs=file_diffs,
            diff_for_prompt="\n".join(d.diff for d in file_diffs),
            parsed_diffs=[parse_file_diff(d) for d in file_diffs],
            discussions=discussions,
            existing_feedback=existing_feedback(discussions),
        )

    async def get_merge_request_from_url(self, mr_url: str) -> MergeRequestDetails:
        return await self.get_merge_request(*self.parse_mr_url(mr_url))

    async def get_discussions(self, project_path: str, mr_iid: int) -> list[Discussion]:
        nodes = await self._get(f"{self._mr_path(project_path, mr_iid)}/discussions", params={"per_page": 100})
        return [_discussion_from_node(n) for n in nodes]

    async def get_discussions_from_url(self, mr_url: str) -> list[Discussion]:
        return await self.get_discussions(*self.parse_mr_url(mr_url))

    async def get_file_content(self, project_path: str, file_path: str, ref: str) -> str:
        return await self._get(
            f"/projects/{_encode(project_path)}/repository/files/{_encode(file_path)}/raw",
            params={"ref": ref},
        )

    async def get_file_content_from_url(self, mr_url: str, file_path: str, ref: str) -> str:
        project_path, _ = self.parse_mr_url(mr_url)
        return await self.get_file_content(project_path, file_path, ref)

    async def add_comment(
        self,
        project_path: str,
        mr_iid: int,
        body: str,
        discussion_id: str | None = None,
        position: Position | None = None,
    ) -> Note:
        """Reply to a discussion, start an inline thread at ``position``, or post a general note."""
        base = self._mr_path(project_path, mr_iid)
        if discussion_id:
            node = await self._post(f"{base}/discussions/{discussion_id}/notes", {"body": body})
        elif position:
            discussion = await self._post(
                f"{base}/discussions",
                {"body": body, "position": position.model_dump(exclude_none=True)},
            )
            node = discussion["notes"][0]
        else:
            node = await self._post(f"{base}/notes", {"body": body})
        logger.info("Comment %s added to %s!%s", node["id"], project_path, mr_iid)
        return _note_from_node(node)

    async def add_comment_from_url(
        self,
        mr_url: str,
        body: str,
        discussion_id: str | None = None,
        position: Position | None = None,
    ) -> Note:
        project_path, mr_iid = self.parse_mr_url(mr_url)
        return await self.add_comment(project_path, mr_iid, body, discussion_id, position)

    async def list_merge_requests(self, project_path: str, state: str | None = "opened") -> list[MergeRequestSummary]:
        params = {"per_page": 100, **({"state": state} if state else {})}
        nodes = await self._get(f"/projects/{_encode(project_path)}/merge_requests", params=params)
        return [_mr_summary_from_node(n) for n in nodes]

    async def assign_reviewers(self, project_path: str, mr_iid: int, reviewer_ids: list[int]) -> MergeRequestSummary:
        node = await self._put(self._mr_path(project_path, mr_iid), {"reviewer_ids": reviewer_ids})
        return _mr_summary_from_node(node)

    async def assign_reviewers_from_url(self, mr_url: str, reviewer_ids: list[int]) -> MergeRequestSummary:
        return await self.assign_reviewers(*self.parse_mr_url(mr_url), reviewer_ids)

    # -- projects and members -------------------------------------------------

    async def list_projects(self) -> list[GitLabProject]:
        # NOTE: first page only (100 most recently active projects with developer access).
        async def fetch() -> list[GitLabProject]:
            nodes = await self._get(
                "/projects",
                params={
                    "membership": "true",
                    "min_access_level": 30,
                    "order_by": "last_activity_at",
                    "sort": "desc",
                    "per_page": 100,
                },
            )
            return [_project_from_node(n) for n in nodes]

        return await self._projects.get_or_fetch(fetch)

    async def filter_projects_by_name(self, name: str) -> list[GitLabProject]:
        """Substring matches first; otherwise projects within the lenient edit distance, closest first."""
        projects = await self.list_projects()
        needle = normalize(name)
        hits = [
            p for p in projects if needle in normalize(p.name) or needle in normalize(p.path_with_namespace)
        ]
        if hits:
            return hits
        scored = sorted(
            ((levenshtein(needle, normalize(p.name)), i, p) for i, p in enumerate(projects)),
            key=lambda item: (item[0], item[1]),
        )
        return [p for distance, _, p in scored if LENIENT_FREEFORM.accepts(name, distance)]

    async def list_members(self, project_path: str) -> list[Member]:
        nodes = await self._get(f"/projects/{_encode(project_path)}/members/all", params={"per_page": 100})
        return [_member_from_node(n) for n in nodes]

    async def list_members_from_url(self, mr_url: str) -> list[Member]:
        project_path, _ = self.parse_mr_url(mr_url)
        return await self.list_members(project_path)

    async def list_members_by_project_name(self, name: str) -> list[Member]:
        matches = await self.filter_projects_by_name(name)
        if not matches:
            projects = await self.list_projects()
            raise NoCloseMatch(name, [p.path_with_namespace for p in projects], noun="projects")
        return await self.list_members(matches[0].path_with_namespace)
