import json

from langchain_core.messages import AIMessage
from langchain_core.runnables import Runnable

import LessonModule.step_improver as si
from LessonModule.step_improver import LessonStepImprover, parse_json_reply


class FakeLLM(Runnable):
    def __init__(self, content, usage=None):
        self.content = content
        self.usage = usage or {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15}
        self.prompts = []

    def invoke(self, prompt, config=None, **kwargs):
        self.prompts.append(prompt.to_string())
        return AIMessage(content=self.content, response_metadata={"token_usage": self.usage})


STEP = {
    "stepType": "type_answer",
    "content": {"type": "type_answer", "question": "water?"},
    "answerData": {"acceptedAnswers": ["H2O"]},
    "explanation": "Two hydrogens",
    "hint": None,
}


def test_improve_step_merges_reply():
    reply = {
        "content": {"question": "What is the chemical formula of water?"},
        "answerData": {"answers": ["H2O", "H₂O"]},
        "hint": "Think hydrogen",
    }
    llm = FakeLLM(json.dumps(reply, ensure_ascii=False))
    improved = LessonStepImprover(llm=llm).improve_step(STEP, locale="hu")

    assert improved.improved
    assert improved.step_type == "type_answer"
    assert improved.content["question"] == "What is the chemical formula of water?"
    assert improved.answer_data == {"acceptedAnswers": ["H2O", "H₂O"]}
    assert improved.explanation == "Two hydrogens"
    assert improved.hint == "Think hydrogen"
    assert improved.usage["total_tokens"] == 15
    assert "Generate ALL content in Hungarian" in llm.prompts[0]


def test_improve_step_accepts_fenced_json():
    llm = FakeLLM('```json\n{"explanation": "Better"}\n```')
    improved = LessonStepImprover(llm=llm).improve_step(STEP)
    assert improved.explanation == "Better"
    assert improved.content["question"] == "water?"


def test_unparseable_reply_keeps_original():
    llm = FakeLLM("Sorry, I cannot help with that.")
    improved = LessonStepImprover(llm=llm).improve_step(STEP)
    assert not improved.improved
    assert improved.to_dict() == {
        "stepType": "type_answer",
        "content": {"type": "type_answer", "question": "water?", "caseSensitive": False},
        "answerData": {"acceptedAnswers": ["H2O"]},
        "explanation": "Two hydrogens",
        "hint": None,
    }
    assert improved.usage["total_tokens"] == 15


def test_source_content_is_truncated():
    llm = FakeLLM("{}")
    LessonStepImprover(llm=llm).improve_step(STEP, source_content="a" * 2500 + "TAIL")
    prompt = llm.prompts[0]
    assert "Original source material for context:" in prompt
    assert "a" * 2000 in prompt
    assert "TAIL" not in prompt


def test_default_llm_uses_env_settings(monkeypatch):
    created = {}

    class DummyChat(FakeLLM):
        def __init__(self, *args, **kwargs):
            created.update(kwargs)
            super().__init__("{}")

    monkeypatch.setattr(si, "ChatOpenAI", DummyChat)
    monkeypatch.setattr(si, "model_name", "test-model")
    LessonStepImprover()
    assert created["model"] == "test-model"
    assert created["temperature"] == 0


def test_parse_json_reply():
    assert parse_json_reply('{"a": 1}') == {"a": 1}
    assert parse_json_reply("[1, 2]") is None
    assert parse_json_reply("") is None
    assert parse_json_reply(None) is None
