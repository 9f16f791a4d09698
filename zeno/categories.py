"""Category configuration — user-defined classification buckets.

Categories are stored per user as a JSON mapping keyed by the category
number (``{"1": {...}, "2": {...}}``). In memory they are an explicit,
ordered ``CategorySet`` of ``CategoryConfig`` records with a stable integer
``id``; lookups never rely on mapping iteration order.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Iterator

logger = logging.getLogger(__name__)

# Fallback when the model names a category the user does not have
DEFAULT_CATEGORY_ID = 2
RESPOND_CATEGORY_ID = 1
MARKETING_CATEGORY_ID = 8
OTHER_CATEGORY_ID = 9

_PREFIX_RE = re.compile(r"^\d+:\s*")
_STRICT_PREFIX_RE = re.compile(r"^\d+:\s")

_RESPOND_NAMES = {"respond", "to respond", "reply needed"}


def get_display_name(prefixed_name: str) -> str:
    """Strip a leading ``"<n>: "`` prefix: ``"1: Respond"`` -> ``"Respond"``."""
    return _PREFIX_RE.sub("", prefixed_name, count=1)


def get_prefixed_name(name: str, order: int) -> str:
    """Prefix a category name with its order, never double-prefixing."""
    if _STRICT_PREFIX_RE.match(name):
        return f"{order}: {get_display_name(name)}"
    return f"{order}: {name}"


def is_other_category(name: str) -> bool:
    return get_display_name(name) == "Other"


def is_respond_category(name: str) -> bool:
    return get_display_name(name).lower() in _RESPOND_NAMES


@dataclass
class CategoryConfig:
    id: int
    name: str
    color: str
    enabled: bool = True
    description: str = ""
    required: bool = False
    rules: str = ""
    drafts: bool = False
    label_enabled: bool = True
    order: int = 0

    @property
    def display_name(self) -> str:
        return get_display_name(self.name)

    def prompt_context(self) -> str:
        """One-line description used in classification prompts."""
        context = f"{self.display_name}: {self.description}"
        if self.rules and self.rules.strip():
            context += f" | Additional rules: {self.rules}"
        return context

    @classmethod
    def from_dict(cls, category_id: int, data: dict[str, Any]) -> CategoryConfig:
        return cls(
            id=category_id,
            name=data.get("name", f"Category {category_id}"),
            color=data.get("color", CATEGORY_COLORS["gray"]),
            enabled=bool(data.get("enabled", True)),
            description=data.get("description", ""),
            required=bool(data.get("required", False)),
            rules=data.get("rules") or "",
            drafts=bool(data.get("drafts", False)),
            label_enabled=bool(data.get("labelEnabled", data.get("label_enabled", True))),
            order=int(data.get("order", category_id)),
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("id")
        data["labelEnabled"] = data.pop("label_enabled")
        return data


@dataclass
class CategorySet:
    """Ordered collection of a user's categories."""

    categories: list[CategoryConfig] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.categories = sorted(self.categories, key=lambda c: (c.order, c.id))

    def __iter__(self) -> Iterator[CategoryConfig]:
        return iter(self.categories)

    def __len__(self) -> int:
        return len(self.categories)

    def __contains__(self, category_id: object) -> bool:
        return any(c.id == category_id for c in self.categories)

    def get(self, category_id: int) -> CategoryConfig | None:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None

    @property
    def enabled(self) -> list[CategoryConfig]:
        return [c for c in self.categories if c.enabled]

    @property
    def max_id(self) -> int:
        return max((c.id for c in self.categories), default=0)

    @property
    def has_other(self) -> bool:
        return any(is_other_category(c.name) for c in self.enabled)

    def is_valid(self, category_id: int) -> bool:
        """True if the id is in range and names an enabled category."""
        if category_id < 1 or category_id > self.max_id:
            return False
        category = self.get(category_id)
        return category is not None and category.enabled

    def resolve(self, category_id: int) -> int:
        """Snap an id that does not name an enabled category to the default."""
        if self.is_valid(category_id):
            return category_id
        logger.debug("Category %d not valid for this user, using %d", category_id, DEFAULT_CATEGORY_ID)
        return DEFAULT_CATEGORY_ID

    def name_of(self, category_id: int) -> str:
        category = self.get(category_id)
        return category.display_name if category else f"Category {category_id}"

    @classmethod
    def from_mapping(cls, mapping: dict[str, Any]) -> CategorySet:
        """Build from the stored ``{"1": {...}}`` form; non-numeric keys are dropped.

        Raises:
            ValueError: a record is not an object or has a non-numeric order.
        """
        categories = []
        for key, data in mapping.items():
            try:
                category_id = int(key)
            except (TypeError, ValueError):
                logger.warning("Ignoring category with non-numeric key %r", key)
                continue
            if data is not None and not isinstance(data, dict):
                raise ValueError(f"Category {key} must be an object")
            categories.append(CategoryConfig.from_dict(category_id, data or {}))
        return cls(categories)

    def to_mapping(self) -> dict[str, dict[str, Any]]:
        return {str(c.id): c.to_dict() for c in self.categories}

    def copy(self) -> CategorySet:
        return CategorySet([replace(c) for c in self.categories])


# Gmail-compatible label colours (exact values accepted by the Gmail API)
CATEGORY_COLORS = {
    "red": "#fb4c2f",
    "orange": "#ffad47",
    "cyan": "#2da2bb",
    "green": "#43d692",
    "purple": "#a479e2",
    "blue": "#4a86e8",
    "teal": "#16a766",
    "pink": "#f691b3",
    "gray": "#4a86e8",  # Gmail has no grey label colour
}


def _build(rows: list[tuple[int, str, str, str, str, bool]]) -> CategorySet:
    return CategorySet(
        [
            CategoryConfig(
                id=cid,
                name=name,
                color=CATEGORY_COLORS[color],
                description=description,
                rules=rules,
                required=cid == RESPOND_CATEGORY_ID,
                drafts=drafts,
                order=cid,
            )
            for cid, name, color, description, rules, drafts in rows
        ]
    )


DEFAULT_CATEGORIES_V1 = _build(
    [
        (1, "Reply Needed", "red", "Requires your reply or action", "", True),
        (2, "For Info", "orange", "Worth knowing, no response required", "", False),
        (3, "Mentions", "cyan", "Mentions from docs, threads & chats", "", False),
        (4, "Notifications", "green", "Automated notifications & confirmations", "", False),
        (5, "Calendar", "purple", "Meetings, invites & calendar events", "", False),
        (6, "Waiting", "blue", "Waiting on someone else's response", "", False),
        (7, "Actioned!", "teal", "Resolved or finished conversations", "", False),
        (8, "Ad/Spam", "pink", "Newsletters, sales & promotional", "", False),
    ]
)

DEFAULT_CATEGORIES_V2 = _build(
    [
        (
            1,
            "Action Required",
            "red",
            "Urgent emails requiring immediate response",
            "Direct questions, time-sensitive requests, decisions needed",
            True,
        ),
        (
            2,
            "FYI Only",
            "orange",
            "Informational emails, no action needed",
            "Status updates, announcements, newsletters you read",
            False,
        ),
        (
            3,
            "Team Updates",
            "cyan",
            "Team communications and collaboration",
            "Project updates, team mentions, Slack/doc notifications",
            False,
        ),
        (
            4,
            "Notifications",
            "green",
            "Automated notifications and confirmations",
            "Service notifications, automated confirmations, system updates",
            False,
        ),
        (
            5,
            "Meetings & Events",
            "purple",
            "Calendar invites and meeting-related emails",
            "Meeting invites, calendar updates, event confirmations",
            False,
        ),
        (
            6,
            "Waiting for Reply",
            "blue",
            "Emails where you're waiting for someone else",
            "Pending responses, delegated tasks, follow-up reminders",
            False,
        ),
        (
            7,
            "Completed",
            "teal",
            "Resolved emails and finished conversations",
            "Task completions, resolved issues, archived conversations",
            False,
        ),
        (
            8,
            "Marketing & Spam",
            "pink",
            "Promotional emails and unwanted messages",
            "Marketing emails, sales pitches, promotional content",
            False,
        ),
    ]
)

DEFAULT_CATEGORIES = DEFAULT_CATEGORIES_V2

OTHER_CATEGORY = CategoryConfig(
    id=OTHER_CATEGORY_ID,
    name="Other",
    color=CATEGORY_COLORS["gray"],
    required=True,
    description="Catch-all for uncategorized emails",
    order=99,
)

CATEGORY_VERSIONS = {"v1": DEFAULT_CATEGORIES_V1, "v2": DEFAULT_CATEGORIES_V2}


def default_categories(version: str | None = None) -> CategorySet:
    """Fresh copy of the default set for a schema version (unknown -> latest)."""
    return CATEGORY_VERSIONS.get(version or "v2", DEFAULT_CATEGORIES).copy()
