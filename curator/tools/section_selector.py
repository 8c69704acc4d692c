from typing import Dict, Any, List, Optional
from curator.config import settings
from curator.models.articles import split_sections
from curator.prompts import SECTION_MAPPING_PROMPT
from curator.services.llm import LLMService, LLMError, llm
from curator.services.logger import logger


class SectionSelector:
    """Maps a free-text interest description onto a pipe-delimited subset of sections."""

    def __init__(self, llm_service: Optional[LLMService] = None, strict: Optional[bool] = None,
                 fallback: Optional[str] = None):
        self.llm = llm_service or llm
        self.strict = settings.SECTION_SELECTOR_STRICT if strict is None else strict
        self.fallback = fallback or settings.FALLBACK_SECTIONS

    def build_messages(self, interests: str, available_sections: List[str],
                       section_summaries: Optional[Dict[str, Any]] = None) -> List[Dict[str, str]]:
        user_message = f"This is a short summary of the user's interests: {interests}."
        user_message += f"\n\nAvailable sections: {', '.join(available_sections)}"

        if section_summaries:
            summaries_text = "\n\n".join(
                f"{name}:\n{(data or {}).get('summary') or 'No summary available'}"
                for name, data in section_summaries.items()
                if name in available_sections
            )
            if summaries_text:
                user_message += f"\n\nHere are detailed summaries of what each section covers:\n\n{summaries_text}"

        return [
            {'role': 'system', 'content': SECTION_MAPPING_PROMPT},
            {'role': 'user', 'content': user_message},
        ]

    def normalize(self, raw: str, available_sections: List[str]) -> str:
        cleaned = raw.strip().strip('"').strip("'").strip("`")
        seen = []
        for section in split_sections(cleaned):
            section = section.strip('"').strip("'").lower()
            if section and section not in seen:
                seen.append(section)

        if self.strict:
            available = set(available_sections)
            unknown = [s for s in seen if s not in available]
            if unknown:
                logger.warning(f"⚠️ Dropping unknown sections from mapping: {', '.join(unknown)}")
            seen = [s for s in seen if s in available]

        if not seen:
            logger.warning(f"⚠️ No usable sections in mapping response, using fallback '{self.fallback}'")
            return self.fallback
        return "|".join(seen)

    async def select_sections(self, interests: str, available_sections: List[str],
                              section_summaries: Optional[Dict[str, Any]] = None) -> str:
        messages = self.build_messages(interests or "", available_sections or [], section_summaries)
        try:
            raw = await self.llm.call(messages)
        except LLMError as e:
            logger.error(f"❌ Failed to map interests to sections: {e}")
            return self.fallback
        except Exception as e:
            logger.error(f"❌ Unexpected section mapping failure: {e}")
            return self.fallback

        selected = self.normalize(raw or "", available_sections or [])
        logger.info(f"🗺️ Mapped interests to sections: {selected}")
        return selected

section_selector = SectionSelector()
