"""
Change Summary Assistant — one-paragraph synopsis of a change request.

Pipeline:
    1. Build the summary prompt from system / description / reason / impact
    2. Call the LLM gateway (single attempt, bounded by the gateway timeout)
    3. Return the trimmed text, or FALLBACK_SUMMARY on any failure

The assistant never raises: a summary that cannot be produced must not
block request creation.
"""

import logging

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY = "Could not generate summary due to an error."

SUMMARY_PROMPT = """\
Summarize the following IT change request into a single, concise paragraph.
Focus on the core objective, the justification, and the potential business or technical impact.
Be professional and clear.

Change Request Details:
- System/Module: {system}
- Description: {description}
- Reason for Change: {reason}
- Impact Assessment: {impact}

Summary:
"""


class ChangeSummaryAssistant:
    """Summarizes change requests through the LLM gateway."""

    def __init__(self, gateway=None, *, max_retries: int = 1):
        self.gateway = gateway
        self.max_retries = max_retries

    def build_messages(self, *, description: str, reason: str, impact: str, system: str) -> list[dict]:
        return [{
            "role": "user",
            "content": SUMMARY_PROMPT.format(
                system=system, description=description, reason=reason, impact=impact,
            ),
        }]

    def summarize(self, description: str, reason: str, impact: str, system: str) -> str:
        if not self.gateway:
            logger.warning("LLM Gateway not available; using fallback summary")
            return FALLBACK_SUMMARY

        messages = self.build_messages(
            description=description, reason=reason, impact=impact, system=system,
        )
        try:
            response = self.gateway.chat(
                messages=messages,
                purpose="change_summary",
                max_retries=self.max_retries,
            )
        except Exception as exc:
            logger.error("Error summarizing change request: %s", exc)
            return FALLBACK_SUMMARY

        text = (response.get("content") or "").strip()
        if not text:
            logger.warning("Summarizer returned empty content; using fallback summary")
            return FALLBACK_SUMMARY
        return text

    __call__ = summarize
