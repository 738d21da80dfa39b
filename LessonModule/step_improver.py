import json
import logging
import os
import re
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from langchain_openai import ChatOpenAI

from LessonModule.step_normalizer import normalize_lesson_step_payload
from tools.lesson_prompts import improve_lesson_step_prompt, source_block
from tools.token_usage import extract_usage

load_dotenv()
model_name = os.environ.get("model_name")
base_url = os.environ.get("base_url")
api_key = os.environ.get("api_key")

_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class ImprovedStep:
    def __init__(
        self,
        step_type: str,
        content: Any,
        answer_data: Any,
        explanation: Optional[str] = None,
        hint: Optional[str] = None,
        usage: Optional[Dict[str, int]] = None,
        improved: bool = True,
    ):
        self.step_type = step_type
        self.content = content
        self.answer_data = answer_data
        self.explanation = explanation
        self.hint = hint
        self.usage = usage
        self.improved = improved  # False when the original step came back

    def to_dict(self):
        return {
            "stepType": self.step_type,
            "content": self.content,
            "answerData": self.answer_data,
            "explanation": self.explanation,
            "hint": self.hint,
        }


def parse_json_reply(text: str) -> Optional[dict]:
    """Parse a JSON object out of an LLM reply, tolerating a Markdown fence."""
    if not text or not text.strip():
        return None
    text = text.strip()
    fenced = _FENCE_PATTERN.match(text)
    if fenced:
        text = fenced.group(1)
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


class LessonStepImprover:
    """Rewrites a lesson step with the LLM and keeps it in canonical shape."""

    def __init__(self, llm=None):
        self.logger = logging.getLogger(__name__)
        self.llm = llm if llm is not None else ChatOpenAI(
            model=model_name,
            temperature=0,
            base_url=base_url,
            api_key=api_key,
            max_tokens=2000,
            model_kwargs={"response_format": {"type": "json_object"}},
        )

    def improve_step(
        self, step: Dict[str, Any], source_content: Optional[str] = None, locale: str = "en"
    ) -> ImprovedStep:
        """Ask the LLM for a better version of ``step``.

        ``step`` uses the stored camelCase keys (``stepType``, ``content``,
        ``answerData``, ``explanation``, ``hint``).  An empty or unparseable
        reply yields the original step.  LLM transport errors propagate.
        """
        original = {
            "stepType": step.get("stepType"),
            "content": step.get("content"),
            "answerData": step.get("answerData"),
            "explanation": step.get("explanation"),
            "hint": step.get("hint"),
        }

        prompt = improve_lesson_step_prompt(locale)
        result = self.llm.invoke(
            prompt.format_prompt(
                step_json=json.dumps(original, ensure_ascii=False),
                source_block=source_block(source_content),
            )
        )
        usage = extract_usage(result)

        parsed = parse_json_reply(getattr(result, "content", str(result)))
        if parsed is None:
            self.logger.warning(
                "Unparseable improvement for %s step, keeping original", original["stepType"]
            )
            return self._build(original, usage, improved=False)

        merged = {
            "stepType": parsed.get("stepType") or original["stepType"],
            "content": parsed.get("content") or original["content"],
            "answerData": parsed["answerData"] if parsed.get("answerData") is not None else original["answerData"],
            "explanation": parsed["explanation"] if parsed.get("explanation") is not None else original["explanation"],
            "hint": parsed["hint"] if parsed.get("hint") is not None else original["hint"],
        }
        self.logger.info("Improved %s step", merged["stepType"])
        return self._build(merged, usage, improved=True)

    @staticmethod
    def _build(step: Dict[str, Any], usage, improved: bool) -> ImprovedStep:
        normalized = normalize_lesson_step_payload(step["stepType"], step["content"], step["answerData"])
        return ImprovedStep(
            normalized.step_type,
            normalized.content,
            normalized.answer_data,
            explanation=step["explanation"],
            hint=step["hint"],
            usage=usage,
            improved=improved,
        )
