"""Summary Prompt — fixed template for condensing a question's responses."""

from factsnap.core.entities import Question, Response

MAX_SUMMARY_RESPONSES = 20

NO_RESPONSES_SUMMARY = "No responses yet, so there is nothing to summarize."

_TEMPLATE = """You are summarizing answers that people nearby gave to a question.

Question: {title}
{body_line}
Responses:
{responses}

Write exactly three bullet points, each starting with "- ".
Write in the third person ("Respondents say...", "One person notes...").
Do not add an introduction or a conclusion. Do not invent facts that are not in
the responses."""


def build_summary_prompt(question: Question, responses: list[Response]) -> str:
    body_line = f"Details: {question.body}\n" if question.body else ""
    lines = "\n".join(
        f"{i}. {response.body.strip()}"
        for i, response in enumerate(responses[:MAX_SUMMARY_RESPONSES], start=1)
    )
    return _TEMPLATE.format(
        title=question.title, body_line=body_line, responses=lines,
    )
