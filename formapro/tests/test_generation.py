"""
Tests for generated question validation and the OpenAI-backed generator.
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from openai import OpenAIError

from formapro.common.error_handling import ErrorCode, ExternalServiceError, PreconditionError
from formapro.config import settings
from formapro.evaluations.generation import (
    InvalidQuestionError,
    OpenAIQuestionGenerator,
    validate_question,
    validate_questions,
)
from formapro.evaluations.types import QuestionType


def single_choice(**overrides):
    item = {
        "question": "Which equipment protects the eyes?",
        "type": "multiple_choice",
        "options": ["Gloves", "Goggles", "Boots", "Helmet"],
        "correct_answers": ["Goggles"],
        "points": 1,
        "explanation": "Goggles cover the eyes.",
    }
    item.update(overrides)
    return item


def chat_reply(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def mock_client(reply=None, error=None):
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=reply, side_effect=error)
    return client


class TestValidateQuestion:
    def test_valid_single_choice(self):
        question = validate_question(single_choice(question="  Padded?  "), 1)

        assert question.question == "Padded?"
        assert question.type is QuestionType.SINGLE_CHOICE
        assert question.correct_answers == ["Goggles"]
        assert question.explanation == "Goggles cover the eyes."

    def test_valid_multi_choice(self):
        question = validate_question(
            single_choice(type="multiple_choice_multiple", correct_answers=["Gloves", "Goggles"]), 1
        )

        assert question.type is QuestionType.MULTI_CHOICE
        assert question.correct_answers == ["Gloves", "Goggles"]

    def test_text_question_has_empty_lists(self):
        question = validate_question({"question": "Explain.", "type": "text", "options": ["x"]}, 1)

        assert question.type is QuestionType.TEXT
        assert question.options == []
        assert question.correct_answers == []

    @pytest.mark.parametrize("points", [None, 0])
    def test_missing_points_default_to_one(self, points):
        assert validate_question(single_choice(points=points), 1).points == 1

    @pytest.mark.parametrize("item", [
        "not an object",
        single_choice(question=""),
        single_choice(question="   "),
        single_choice(type="essay"),
        single_choice(options=["Only one"], correct_answers=["Only one"]),
        single_choice(options="Gloves, Goggles"),
        single_choice(correct_answers=[]),
        single_choice(correct_answers=["Sunglasses"]),
        single_choice(points=-1),
        single_choice(points="two"),
        single_choice(points=True),
        single_choice(correct_answers=["Gloves", "Goggles"]),
        single_choice(type="multiple_choice_multiple"),
        single_choice(type="multiple_choice_multiple", correct_answers=["Goggles", "Goggles"]),
    ])
    def test_invalid_items(self, item):
        with pytest.raises(InvalidQuestionError):
            validate_question(item, 3)

    def test_error_names_the_item_position(self):
        with pytest.raises(InvalidQuestionError, match="Question 4"):
            validate_question(single_choice(type="essay"), 4)


class TestValidateQuestions:
    def test_truncates_to_requested_count(self):
        payload = {"questions": [single_choice(question=f"Q{i}") for i in range(5)]}

        questions = validate_questions(payload, 3)

        assert [q.question for q in questions] == ["Q0", "Q1", "Q2"]

    def test_missing_question_list(self):
        with pytest.raises(PreconditionError) as exc_info:
            validate_questions({"items": []}, 3)
        assert exc_info.value.code is ErrorCode.INVALID_GENERATION

    def test_one_invalid_item_rejects_the_batch(self):
        payload = {"questions": [single_choice(), single_choice(correct_answers=["Nope"])]}

        with pytest.raises(PreconditionError) as exc_info:
            validate_questions(payload, 2)

        assert exc_info.value.code is ErrorCode.INVALID_GENERATION
        assert "Question 2" in exc_info.value.message
        assert exc_info.value.suggestions

    def test_empty_question_list(self):
        with pytest.raises(PreconditionError):
            validate_questions({"questions": []}, 3)


class TestOpenAIQuestionGenerator:
    @pytest.mark.asyncio
    async def test_generates_validated_questions(self):
        reply = chat_reply(json.dumps({"questions": [single_choice(), single_choice(question="Second")]}))
        client = mock_client(reply)
        generator = OpenAIQuestionGenerator(client=client, model="test-model")

        questions = await generator.generate("Some training content", 1)

        assert len(questions) == 1
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert "Some training content" in kwargs["messages"][1]["content"]

    def test_prompt_carries_count_and_language(self):
        generator = OpenAIQuestionGenerator(client=MagicMock(), language="English")

        messages = generator.build_messages("Content", 7)

        assert messages[0]["role"] == "system"
        assert "exactly 7 assessment questions in English" in messages[1]["content"]

    @pytest.mark.asyncio
    async def test_unparseable_reply(self):
        generator = OpenAIQuestionGenerator(client=mock_client(chat_reply("not json")))

        with pytest.raises(PreconditionError) as exc_info:
            await generator.generate("Content", 3)

        assert exc_info.value.code is ErrorCode.INVALID_GENERATION

    @pytest.mark.asyncio
    async def test_service_failure(self):
        generator = OpenAIQuestionGenerator(client=mock_client(error=OpenAIError("boom")))

        with pytest.raises(ExternalServiceError) as exc_info:
            await generator.generate("Content", 3)

        assert exc_info.value.service == "openai"

    @pytest.mark.asyncio
    async def test_empty_content_is_rejected_before_calling_the_service(self):
        client = mock_client(chat_reply("{}"))
        generator = OpenAIQuestionGenerator(client=client)

        with pytest.raises(PreconditionError) as exc_info:
            await generator.generate("   ", 3)

        assert exc_info.value.code is ErrorCode.INSUFFICIENT_CONTENT
        client.chat.completions.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch):
        monkeypatch.setattr(settings, "OPENAI_API_KEY", None)
        generator = OpenAIQuestionGenerator()

        with pytest.raises(ExternalServiceError):
            await generator.generate("Content", 3)
