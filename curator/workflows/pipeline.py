import asyncio
import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
from curator.config import settings
from curator.models.articles import CuratedFeedRecord, CurationResult, UserRecord, split_sections
from curator.services.database import BackgroundWriter, Database, db
from curator.services.delivery import EmailSender, email_sender
from curator.services.library import ArticleLibraryProvider, library_provider
from curator.services.logger import logger
from curator.tools.section_selector import SectionSelector, section_selector
from curator.workflows.curation import CurationOrchestrator, orchestrator


class CurationInputError(ValueError):
    pass


def generate_user_id(email: str) -> str:
    return hashlib.sha256(email.strip().lower().encode("utf-8")).hexdigest()[:8]


class CurationPipeline:
    def __init__(self, provider: Optional[ArticleLibraryProvider] = None,
                 selector: Optional[SectionSelector] = None,
                 curation: Optional[CurationOrchestrator] = None,
                 sender: Optional[EmailSender] = None,
                 database: Optional[Database] = None,
                 writer: Optional[BackgroundWriter] = None,
                 summary_path: Optional[Path] = None):
        self.provider = provider or library_provider
        self.selector = selector or section_selector
        self.curation = curation or orchestrator
        self.sender = sender or email_sender
        self.db = database or db
        self.writer = writer or BackgroundWriter()
        self.summary_path = summary_path or settings.DATA_DIR / "curation-summary.json"

    async def run(self, email: str, user_interests: str, is_new_user: bool = True,
                  cancel_event: Optional[asyncio.Event] = None) -> Dict[str, Any]:
        """
        Full curation flow for one user:
        1. Resolve sections (mapped for new users, stored for existing ones)
        2. Load and sample article libraries
        3. Score and rank articles
        4. Send the digest, then persist in the background
        """
        if not email:
            raise CurationInputError("Missing required input: email")
        if is_new_user and not user_interests:
            raise CurationInputError("Missing required input: user_interests")

        existing: Optional[UserRecord] = None
        interests = user_interests
        user_id = generate_user_id(email)

        if is_new_user:
            logger.info("🗺️ Mapping user interests to sections...")
            summaries = await self.provider.fetch_section_summaries()
            available = await self.provider.available_sections()
            selected_sections = await self.selector.select_sections(
                interests, available, (summaries or {}).get("sections")
            )
        else:
            await self.db.init()
            existing = await self.db.get_user_by_email(email)
            if existing is None:
                raise CurationInputError(f"Existing user not found for email {email}")
            if not existing.paid:
                logger.warning(f"⏭️ Skipping {email}: user not paid")
                summary = self._summary(email, existing.selected_sections, status="skipped", reason="User not paid")
                self.write_summary(summary)
                return summary
            user_id = existing.user_id
            selected_sections = existing.selected_sections or ""
            interests = existing.user_interests or user_interests
            if not interests:
                raise CurationInputError(f"No stored interests for {email}")

        if not split_sections(selected_sections):
            raise CurationInputError(f"No sections available for curation for {email}")
        logger.info(f"✅ Selected sections: {selected_sections}")

        prepared = await self.provider.prepare_for_curation(selected_sections)

        logger.info("🎯 Curating articles...")
        result = await self.curation.curate_with_fallback(interests, prepared.articles, cancel_event=cancel_event)

        logger.info("📧 Sending email...")
        email_result = await self.sender.send_digest(email, result.articles, selected_sections)
        if not email_result.success:
            logger.warning(f"⚠️ Email sending failed: {email_result.error}")

        self.writer.submit(
            self.persist(user_id, email, interests, selected_sections, result, existing),
            label=f"persistence for {email}",
        )

        summary = self._summary(
            email, selected_sections,
            curated_count=len(result.articles),
            prepared_count=prepared.article_count,
            email_sent=email_result.success,
            fallback_used=result.fallback_used,
            distribution=result.distribution,
        )
        self.write_summary(summary)
        logger.info("✅ Curation workflow completed")
        return summary

    async def persist(self, user_id: str, email: str, interests: str, selected_sections: str,
                      result: CurationResult, existing: Optional[UserRecord]) -> None:
        now = datetime.now(timezone.utc)
        await self.db.init()
        await self.db.upsert_user(UserRecord(
            user_id=user_id,
            email=email,
            user_interests=interests if existing is None else None,
            selected_sections=selected_sections if existing is None else None,
            paid=existing.paid if existing else False,
            is_first_conversation_complete=True,
            created_at=existing.created_at if existing else now,
            last_updated=now,
            last_report_generated_at=now,
        ))
        await self.db.save_curated_feed(CuratedFeedRecord(
            user_id=user_id,
            email=email,
            curated_articles=[article.to_digest_dict() for article in result.articles],
            article_count=len(result.articles),
            is_first_feed=existing is None,
            created_at=now,
        ))

    def _summary(self, email: str, selected_sections: Optional[str], status: str = "success", **extra) -> Dict[str, Any]:
        return {
            "email": email,
            "selectedSections": selected_sections,
            "status": status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            **extra,
        }

    def write_summary(self, summary: Dict[str, Any]) -> None:
        try:
            self.summary_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.summary_path, "w", encoding='utf-8') as f:
                json.dump(summary, f, indent=2)
        except OSError as e:
            logger.warning(f"⚠️ Failed to write summary file: {e}")

pipeline = CurationPipeline()
