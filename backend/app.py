from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import List, Optional, Dict, Any
import logging

from LessonModule import (
    STEP_TYPE_META,
    LessonStepImprover,
    check_step_answer,
    extract_fill_blank_ids,
    normalize_lesson_step_payload,
    parse_fill_blank_template,
    replace_generic_blank_placeholders,
)
from LessonModule.step_improver import model_name
from QuizModule import normalize_question_payload, normalize_question_type, validate_answer
from tools.token_usage import check_token_limit, log_token_usage

app = FastAPI(title="AI-Education Lessons API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = logging.getLogger(__name__)
_step_improver = None


def get_step_improver() -> LessonStepImprover:
    global _step_improver
    if _step_improver is None:
        _step_improver = LessonStepImprover()
    return _step_improver


class FillBlankParseRequest(BaseModel):
    template: Optional[str] = None
    blanks: Optional[List[Any]] = None


class FillBlankMaterializeRequest(BaseModel):
    template: Optional[str] = None
    blank_ids: List[Optional[str]] = []


class LessonStepPayload(BaseModel):
    step_type: str
    content: Any = None
    answer_data: Any = None


class LessonStepCheck(BaseModel):
    step_type: str
    content: Any = None
    answer_data: Any = None
    user_answer: Any = None


class QuizQuestionPayload(BaseModel):
    question_type: Optional[str] = None
    question_config: Any = None
    correct_answer_data: Any = None
    options: Optional[List[Any]] = None
    correct_answer: Any = None


class QuizAnswerValidation(BaseModel):
    question_type: str
    user_answer: Any = None
    correct_answer_data: Any = None
    question_config: Any = None
    partial_credit_enabled: bool = True


class ImproveStepRequest(BaseModel):
    user_id: str
    step: Dict[str, Any]
    source_content: Optional[str] = None
    locale: str = "en"


@app.post("/api/fill-blank/parse")
async def parse_fill_blank(req: FillBlankParseRequest):
    parts = parse_fill_blank_template(req.template, req.blanks)
    return {
        "parts": [part.to_dict() for part in parts],
        "blankIds": extract_fill_blank_ids(req.template, req.blanks),
    }


@app.post("/api/fill-blank/materialize")
async def materialize_fill_blank(req: FillBlankMaterializeRequest):
    return {"template": replace_generic_blank_placeholders(req.template, req.blank_ids)}


@app.post("/api/lesson-steps/normalize")
async def normalize_lesson_step(req: LessonStepPayload):
    return normalize_lesson_step_payload(req.step_type, req.content, req.answer_data).to_dict()


@app.post("/api/lesson-steps/check")
async def check_lesson_step(req: LessonStepCheck):
    return {
        "isCorrect": check_step_answer(req.step_type, req.content, req.answer_data, req.user_answer)
    }


@app.get("/api/lesson-steps/types")
async def get_lesson_step_types():
    return [meta.to_dict() for meta in STEP_TYPE_META.values()]


@app.post("/api/quiz-questions/normalize")
async def normalize_quiz_question(req: QuizQuestionPayload):
    return normalize_question_payload(
        req.question_type,
        req.question_config,
        req.correct_answer_data,
        req.options,
        req.correct_answer,
    ).to_dict()


@app.post("/api/quiz-questions/validate")
async def validate_quiz_answer(req: QuizAnswerValidation):
    result = validate_answer(
        normalize_question_type(req.question_type),
        req.user_answer,
        req.correct_answer_data,
        req.question_config,
        partial_credit_enabled=req.partial_credit_enabled,
    )
    return result.to_dict()


@app.post("/api/lesson-steps/improve")
async def improve_lesson_step(req: ImproveStepRequest):
    if not req.step.get("stepType"):
        raise HTTPException(status_code=400, detail="Step type is required")

    limit = check_token_limit(req.user_id)
    if not limit.allowed:
        logger.info(
            "Refusing improvement for %s: %s of %s tokens used",
            req.user_id,
            limit.tokens_used,
            limit.token_limit,
        )
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={
                "error": "Token usage limit exceeded",
                "code": "TOKEN_LIMIT_EXCEEDED",
                "tokensUsed": limit.tokens_used,
                "tokenLimit": limit.token_limit,
            },
        )

    improved = get_step_improver().improve_step(req.step, req.source_content, req.locale)
    log_token_usage(req.user_id, improved.usage, "improve_lesson_step", model_name)
    return improved.to_dict()


@app.get("/api/token-usage/{user_id}")
async def get_token_usage(user_id: str):
    return check_token_limit(user_id).to_dict()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
