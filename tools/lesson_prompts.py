from langchain_core.prompts import ChatPromptTemplate

LANGUAGE_NAMES = {"en": "English", "hu": "Hungarian"}

SOURCE_CONTENT_LIMIT = 2000


def language_instruction(locale: str = "en") -> str:
    language = LANGUAGE_NAMES.get(locale or "en", "English")
    return f"\nIMPORTANT: Generate ALL content in {language}."


def improve_lesson_step_prompt(locale: str = "en") -> ChatPromptTemplate:
    """Prompt taking ``step_json`` and ``source_block`` variables."""
    system_message = (
        "You are an expert instructional designer. Improve the given lesson step "
        "to be more engaging, clear, and educationally effective. Maintain the same "
        "step type and structure, but enhance the content quality. Return the "
        "improved step in the same JSON format."
        + language_instruction(locale)
    )

    human_message = (
        "Improve this lesson step:\n{step_json}{source_block}\n\n"
        "Return the improved step as JSON with the same structure."
    )

    return ChatPromptTemplate.from_messages(
        [("system", system_message), ("human", human_message)]
    )


def source_block(source_content: str = None) -> str:
    if not source_content:
        return ""
    return (
        "\n\nOriginal source material for context:\n"
        + source_content[:SOURCE_CONTENT_LIMIT]
    )
