"""
Idea Thread Manager Module

CRUD over the ideas attached to an underline. Creating or deleting an idea
adjusts the owning underline's count through the UnderlineStore so badges stay
consistent; editing only touches content.
"""

import logging

from ..config import MAX_IDEA_CONTENT_LENGTH
from ..errors import AuthError, NetworkError, ValidationError
from ..models.underlines import Idea, Underline
from .content_api_client import ContentApiClient
from .underline_store import UnderlineStore

logger = logging.getLogger(__name__)


class IdeaThreadManager:
    """Idea CRUD for the underlines of one open document"""

    def __init__(
        self,
        client: ContentApiClient,
        store: UnderlineStore,
        max_content_length: int = MAX_IDEA_CONTENT_LENGTH,
    ):
        self._client = client
        self._store = store
        self.max_content_length = max_content_length
        # idea id -> owning underline id, learned from list/create responses
        self._owners: dict[int, int] = {}
        store.add_listener(self._forget_removed_underlines)

    def _require_auth(self) -> None:
        if not self._client.is_authenticated:
            raise AuthError("Ideas require a signed-in reader")

    def _validate_content(self, content: str) -> str:
        content = (content or "").strip()
        if not content:
            raise ValidationError("Idea content is required")
        if len(content) > self.max_content_length:
            raise ValidationError(
                f"Idea content exceeds {self.max_content_length} characters"
            )
        return content

    def _ideas_path(self, underline_id: int) -> str:
        prefix = self._store.document.kind.underline_prefix
        return f"{prefix}/{underline_id}/ideas"

    def _idea_path(self, idea_id: int) -> str:
        return f"{self._store.document.kind.idea_prefix}/{idea_id}"

    def _forget_removed_underlines(self, underlines: list[Underline]) -> None:
        live = {u.id for u in underlines}
        self._owners = {
            idea_id: owner for idea_id, owner in self._owners.items() if owner in live
        }

    async def list_ideas(self, underline_id: int) -> list[Idea]:
        """
        Fetch an underline's ideas, newest first.

        Raises:
            AuthError: No credential; nothing was sent
            NetworkError: The Content API call failed
        """
        self._require_auth()
        rows = await self._client.get(self._ideas_path(underline_id))
        ideas = [Idea.from_api(row, underline_id) for row in rows or []]
        for idea in ideas:
            self._owners[idea.id] = underline_id
        return ideas

    async def create_idea(self, underline_id: int, content: str) -> Idea:
        """
        Attach a new idea to an underline and bump its count.

        Raises:
            AuthError: No credential; nothing was sent
            ValidationError: Empty or too long content; nothing was sent
            NetworkError: The Content API call failed; the count is unchanged
        """
        self._require_auth()
        content = self._validate_content(content)

        row = await self._client.post(
            self._ideas_path(underline_id), {"content": content}
        )
        idea = Idea.from_api(row, underline_id)
        self._owners[idea.id] = underline_id
        self._store.bump_idea_count(underline_id, +1)
        logger.info(f"Saved idea {idea.id} on underline {underline_id}")
        return idea

    async def update_idea(self, idea_id: int, content: str) -> Idea:
        """
        Replace an idea's content. The owning underline's count is not touched.

        Raises:
            AuthError: No credential; nothing was sent
            ValidationError: Empty or too long content; nothing was sent
            NetworkError: The Content API call failed
        """
        self._require_auth()
        content = self._validate_content(content)

        row = await self._client.patch(self._idea_path(idea_id), {"content": content})
        owner = self._owners.get(idea_id)
        if row:
            idea = Idea.from_api(row, owner)
        elif owner is not None:
            idea = Idea(id=idea_id, underline_id=owner, content=content)
        else:
            raise NetworkError(f"Empty response updating idea {idea_id}")
        logger.info(f"Updated idea {idea_id}")
        return idea

    async def delete_idea(self, idea_id: int, underline_id: int | None = None) -> None:
        """
        Delete an idea and decrement its underline's count.

        Args:
            idea_id: Idea to delete
            underline_id: Owning underline; looked up from earlier responses if omitted

        Raises:
            AuthError: No credential; nothing was sent
            ValidationError: The owning underline is unknown or does not match
            NetworkError: The Content API call failed; the count is unchanged
        """
        self._require_auth()
        known_owner = self._owners.get(idea_id)
        if underline_id is not None and known_owner is not None and known_owner != underline_id:
            raise ValidationError(
                f"Idea {idea_id} belongs to underline {known_owner}, not {underline_id}"
            )
        owner = underline_id if underline_id is not None else known_owner
        if owner is None:
            raise ValidationError(f"Unknown underline for idea {idea_id}")

        await self._client.delete(self._idea_path(idea_id))
        self._owners.pop(idea_id, None)
        self._store.bump_idea_count(owner, -1)
        logger.info(f"Deleted idea {idea_id} from underline {owner}")
