from datetime import datetime, timezone
from typing import List

from langchain_core.output_parsers import PydanticOutputParser
from langchain_core.prompts import PromptTemplate

from langchain_gemini import GeminiLLM
from schemas import GeneratedAnswer, GenerationResponse, HistoryMessage, MessageMetadata


class GenerationChain:
    """Prompt -> LLM runnable plus the parser for its structured output."""

    def __init__(self, runnable, parser, model_name):
        self.runnable = runnable
        self.parser = parser
        self.model_name = model_name


def make_generation_chain(llm=None, api_key: str = None) -> GenerationChain:
    llm = llm or GeminiLLM(api_key=api_key)

    parser = PydanticOutputParser(pydantic_object=GeneratedAnswer)

    prompt_template = (
        "You build UI components from chat requests.\n"
        "Conversation so far:\n{history}\n\n"
        "New request:\n{message}\n\n"
        "Reply with a short explanation in `message` and the complete source of every file in `code`.\n"
        "Return ONLY valid JSON parsable to the following schema:\n"
        "{format_instructions}"
    )

    prompt = PromptTemplate(
        input_variables=["history", "message"],
        partial_variables={"format_instructions": parser.get_format_instructions()},
        template=prompt_template,
    )

    model_name = getattr(llm, "model", None) or type(llm).__name__
    return GenerationChain(prompt | llm, parser, model_name)


def render_history(history: List[HistoryMessage]) -> str:
    if not history:
        return "(none)"
    return "\n".join(f"{m.role}: {m.content}" for m in history)


def run_generation(chain: GenerationChain, message: str, history: List[HistoryMessage] = None,
                   thread_id: str = None) -> GenerationResponse:
    raw = chain.runnable.invoke({"history": render_history(history or []), "message": message})
    parsed = chain.parser.parse(raw)
    return GenerationResponse(
        message=parsed.message,
        code=parsed.code,
        metadata=MessageMetadata(
            model=chain.model_name,
            timestamp=datetime.now(timezone.utc).isoformat(),
            thread_id=thread_id,
        ),
    )
