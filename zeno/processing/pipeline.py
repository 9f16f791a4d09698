"""Email processing pipeline — classify, label, draft and record a user's new mail.

Processing is strictly sequential: one email at a time, one user at a time.
A failure while handling one email is recorded and the loop moves on; the
email stays unprocessed and is picked up again on the next run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Union

from zeno.categories import RESPOND_CATEGORY_ID, CategoryConfig
from zeno.classify.engine import ClassificationEngine
from zeno.classify.parser import ClassificationResult
from zeno.config import AppConfig
from zeno.context.sender import SenderContextLookup
from zeno.context.thread import format_thread_for_ai
from zeno.db.connection import Database
from zeno.db.models import EmailRecord, EmailRepository, User, UserRepository
from zeno.draft.engine import DraftEngine
from zeno.gmail.client import GmailService, UserGmailClient
from zeno.gmail.models import Email, extract_email_address
from zeno.users.settings import UserSettings

logger = logging.getLogger(__name__)


class UserNotFoundError(Exception):
    def __init__(self, user_email: str):
        self.user_email = user_email
        super().__init__(f"User not found: {user_email}")


class LabelsNotSetupError(Exception):
    def __init__(self, user_email: str):
        self.user_email = user_email
        super().__init__("Please setup Gmail labels first")


@dataclass(frozen=True)
class EmailSuccess:
    gmail_id: str
    subject: str
    from_: str
    category: int
    confidence: float
    is_thread: bool
    draft_id: str | None = None

    @property
    def draft_created(self) -> bool:
        return self.draft_id is not None


@dataclass(frozen=True)
class EmailFailure:
    gmail_id: str
    subject: str
    error: str


EmailOutcome = Union[EmailSuccess, EmailFailure]


@dataclass
class UserReport:
    user_email: str
    results: list[EmailOutcome] = field(default_factory=list)
    error: str | None = None

    @property
    def successes(self) -> list[EmailSuccess]:
        return [r for r in self.results if isinstance(r, EmailSuccess)]

    @property
    def failures(self) -> list[EmailFailure]:
        return [r for r in self.results if isinstance(r, EmailFailure)]

    @property
    def emails_processed(self) -> int:
        return len(self.successes)

    @property
    def drafts_created(self) -> int:
        return sum(1 for r in self.successes if r.draft_created)

    def to_dict(self) -> dict:
        data = {
            "userEmail": self.user_email,
            "emailsProcessed": self.emails_processed,
            "draftsCreated": self.drafts_created,
            "failed": len(self.failures),
        }
        if self.error:
            data["error"] = self.error
        return data


def label_id_for(user: User, category: CategoryConfig) -> str | None:
    """Label ids are stored by category name; older rows used the number."""
    for key in (category.name, category.display_name, str(category.id)):
        label_id = user.gmail_label_ids.get(key)
        if label_id:
            return label_id
    return None


def reply_all_cc(email: Email, user_email: str) -> str | None:
    """Everyone on To/Cc except the sender and the user, de-duplicated."""
    addresses: list[str] = []
    for header in (email.cc, email.to):
        if header:
            addresses.extend(addr.strip() for addr in header.split(","))

    excluded = {email.from_email.lower(), user_email.lower()}
    recipients = [
        addr
        for addr in dict.fromkeys(addresses)
        if addr and extract_email_address(addr) not in excluded
    ]
    return ", ".join(recipients) if recipients else None


class _DraftBudget:
    """Free-tier draft allowance for one processing run."""

    def __init__(self, user: User, limit: int):
        self.unlimited = user.is_subscribed
        self.count = user.drafts_created_count
        self.limit = limit

    @property
    def available(self) -> bool:
        return self.unlimited or self.count < self.limit


class EmailProcessor:
    """Runs the per-user processing loop."""

    def __init__(
        self,
        db: Database,
        config: AppConfig,
        gmail: GmailService,
        classifier: ClassificationEngine,
        drafts: DraftEngine,
    ):
        self.db = db
        self.config = config
        self.gmail = gmail
        self.classifier = classifier
        self.drafts = drafts
        self.users = UserRepository(db)
        self.emails = EmailRepository(db)
        self.sender_lookup = SenderContextLookup(self.emails)

    def process_user(self, user_email: str, max_emails: int | None = None) -> UserReport:
        """Process one user's unread mail.

        Raises:
            UserNotFoundError: no such user.
            LabelsNotSetupError: the user has not set up category labels.
        """
        user = self.users.get_by_email(user_email)
        if user is None:
            raise UserNotFoundError(user_email)
        if not user.labels_created:
            raise LabelsNotSetupError(user_email)
        client = self.gmail.for_user(user)
        return self._run(user, client, UserSettings(self.db, user.email), max_emails)

    def process_all_users(self) -> list[UserReport]:
        """Scheduled run over every user with labels and a refresh token."""
        reports = []
        for user in self.users.get_processable_users():
            settings = UserSettings(self.db, user.email)
            if settings.auto_poll_opted_out:
                logger.info("Skipping %s - auto-polling disabled", user.email)
                continue

            try:
                token = self.gmail.refresh_access_token(user)
            except Exception as e:
                logger.error("Failed to refresh token for %s: %s", user.email, e)
                reports.append(UserReport(user.email, error="Token refresh failed"))
                continue
            self.users.update_access_token(user.email, token)
            user.access_token = token

            try:
                client = self.gmail.for_user(user)
                reports.append(self._run(user, client, settings, None))
            except Exception as e:
                logger.error("Failed to process user %s: %s", user.email, e, exc_info=True)
                reports.append(UserReport(user.email, error=str(e)))

        logger.info(
            "Scheduled run completed: %d users, %d emails, %d drafts",
            len(reports),
            sum(r.emails_processed for r in reports),
            sum(r.drafts_created for r in reports),
        )
        return reports

    def _run(
        self,
        user: User,
        client: UserGmailClient,
        settings: UserSettings,
        max_emails: int | None,
    ) -> UserReport:
        processing = self.config.processing
        processed_ids = self.emails.processed_ids(user.email)
        fetched = client.get_emails(max_emails or processing.max_emails, processing.query)
        new_emails = [e for e in fetched if e.id not in processed_ids]
        logger.info("%s: %d new of %d fetched", user.email, len(new_emails), len(fetched))

        budget = _DraftBudget(user, processing.free_draft_limit)
        report = UserReport(user.email)
        for email in new_emails:
            report.results.append(self.process_email(user, client, settings, email, budget))

        self.users.touch(user.email)
        return report

    def process_email(
        self,
        user: User,
        client: UserGmailClient,
        settings: UserSettings,
        email: Email,
        budget: _DraftBudget,
    ) -> EmailOutcome:
        """Classify, label, maybe draft, then record one email. Never raises."""
        try:
            categories = settings.categories
            llm_kwargs = {"user_email": user.email, "gmail_id": email.id}

            sender_context = None
            if self.config.classification.enhanced:
                sender_context = self.sender_lookup.get(user.email, email.from_email)

            result = self.classifier.classify(email, sender_context, categories, **llm_kwargs)

            category = categories.get(result.category)
            if category is not None and category.label_enabled:
                label_id = label_id_for(user, category)
                if label_id:
                    client.apply_label(email.id, label_id)
                else:
                    logger.info("No label found for category %d (%s)", category.id, category.name)

            draft_id = None
            if (
                result.category == RESPOND_CATEGORY_ID
                and settings.drafts_enabled
                and budget.available
            ):
                draft_id = self._create_draft(user, client, settings, email, llm_kwargs)
                if draft_id:
                    budget.count += 1
                    self.users.increment_draft_count(user.email)

            self._record(user, email, result, draft_id)
            return EmailSuccess(
                gmail_id=email.id,
                subject=email.subject,
                from_=email.from_,
                category=result.category,
                confidence=result.confidence,
                is_thread=result.is_thread,
                draft_id=draft_id,
            )
        except Exception as e:
            logger.error(
                "Failed to process email %s for %s: %s", email.id, user.email, e, exc_info=True
            )
            return EmailFailure(gmail_id=email.id, subject=email.subject, error=str(e))

    def _create_draft(
        self,
        user: User,
        client: UserGmailClient,
        settings: UserSettings,
        email: Email,
        llm_kwargs: dict,
    ) -> str | None:
        """Generate and save a reply draft. Failures are logged, never raised."""
        try:
            thread_context = ""
            try:
                messages = client.get_thread_messages(email.thread_id, user.email)
                thread_context = format_thread_for_ai(
                    messages, self.config.processing.thread_context_chars
                )
            except Exception as e:
                logger.info("Could not load thread context for %s: %s", email.id, e)

            body = self.drafts.generate_draft_response(
                email.from_,
                email.subject,
                email.body or email.body_preview,
                settings.temperature,
                settings.signature,
                settings.writing_style,
                thread_context,
                **llm_kwargs,
            )
            return client.create_draft(
                email.from_email,
                email.subject,
                body,
                email.thread_id,
                cc=reply_all_cc(email, user.email),
                user_email=user.email,
            )
        except Exception as e:
            logger.warning("Failed to create draft for email %s: %s", email.id, e)
            return None

    def _record(
        self, user: User, email: Email, result: ClassificationResult, draft_id: str | None
    ) -> None:
        self.emails.upsert(
            EmailRecord(
                user_email=user.email,
                gmail_id=email.id,
                thread_id=email.thread_id,
                subject=email.subject,
                from_header=email.from_,
                from_email=email.from_email,
                body_preview=email.body_preview,
                category=result.category,
                classification_reasoning=result.reasoning,
                classification_confidence=result.confidence,
                is_thread=result.is_thread,
                sender_known=result.sender_known,
                draft_id=draft_id,
            )
        )
