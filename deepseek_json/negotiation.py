"""TaskFinisher negotiation: clarify-then-finalize rounds against a ChatBackend."""

import logging
from collections.abc import Awaitable, Callable

from deepseek_json.chat import ChatBackend
from deepseek_json.errors import DeepSeekError
from deepseek_json.models import (
    AnswersPayload,
    ArtifactReply,
    ClarifyingPayload,
    Message,
    NegotiationOutcome,
    OutcomeStatus,
    Role,
)
from deepseek_json.parser import parse_response
from deepseek_json.prompts import DEFAULT_MAX_QUESTIONS, build_system_prompt, build_task_request

logger = logging.getLogger(__name__)

DEFAULT_MAX_ROUNDS = 5

AnswerCollector = Callable[[ClarifyingPayload, int], Awaitable[AnswersPayload]]


async def proceed_without_answers(payload: ClarifyingPayload, round_number: int) -> AnswersPayload:
    """Answer collector that always says "proceed with what we have"."""
    return AnswersPayload(answers=[])


def serialize_answers(answers: AnswersPayload) -> str:
    return answers.model_dump_json()


class NegotiationRun:
    """One negotiation: owns its history and round counter exclusively."""

    def __init__(self, system_prompt: str, task_request: str) -> None:
        self._history: list[Message] = [
            Message(Role.SYSTEM, system_prompt),
            Message(Role.USER, build_task_request(task_request)),
        ]
        self.round = 1

    @property
    def history(self) -> tuple[Message, ...]:
        return tuple(self._history)

    def record_round(self, assistant_raw: str, answers: AnswersPayload) -> None:
        """Append the assistant reply and the user's answers, then advance the round."""
        self._history.append(Message(Role.ASSISTANT, assistant_raw))
        self._history.append(Message(Role.USER, serialize_answers(answers)))
        self.round += 1

    def finish(self, status: OutcomeStatus, raw_text: str, **extra) -> NegotiationOutcome:
        return NegotiationOutcome(
            status=status,
            rounds=self.round,
            raw_text=raw_text,
            history=self.history,
            **extra,
        )


class NegotiationEngine:
    """Drives clarify-then-finalize rounds until an artifact, a parse failure, or the round cap.

    Dispatch failures are not caught: the DeepSeekError propagates to the
    caller and the run ends. Independent runs may share one engine and
    execute concurrently; each call to ``run`` gets its own history.
    """

    def __init__(
        self,
        chat: ChatBackend,
        answer_collector: AnswerCollector = proceed_without_answers,
        *,
        max_questions: int = DEFAULT_MAX_QUESTIONS,
        max_rounds: int = DEFAULT_MAX_ROUNDS,
    ) -> None:
        if max_rounds < 1:
            raise DeepSeekError.config("max_rounds must be at least 1")
        self._chat = chat
        self._collect_answers = answer_collector
        self._system_prompt = build_system_prompt(max_questions)
        self.max_rounds = max_rounds

    async def run(self, task_request: str) -> NegotiationOutcome:
        """Negotiate one technical task.

        Args:
            task_request: Free-text description of the task from the user.

        Returns:
            NegotiationOutcome with status ARTIFACT, ROUND_CAP_EXCEEDED or
            PARSE_FAILURE.

        Raises:
            DeepSeekError: If a chat exchange fails.
        """
        run = NegotiationRun(self._system_prompt, task_request)

        while True:
            logger.info("TaskFinisher round %d: sending %d messages", run.round, len(run.history))
            raw = await self._chat.complete(run.history)

            try:
                result = parse_response(raw)
            except DeepSeekError as exc:
                logger.warning("TaskFinisher round %d: unparseable reply: %s", run.round, exc)
                return run.finish(OutcomeStatus.PARSE_FAILURE, raw, error=exc)

            if isinstance(result, ArtifactReply):
                logger.info("TaskFinisher round %d: artifact %r received", run.round, result.artifact.title)
                return run.finish(OutcomeStatus.ARTIFACT, raw, artifact=result.artifact)

            payload = result.payload
            if run.round >= self.max_rounds:
                logger.warning("Reached maximum clarification rounds (%d)", self.max_rounds)
                return run.finish(OutcomeStatus.ROUND_CAP_EXCEEDED, raw, last_payload=payload)

            logger.info(
                "TaskFinisher round %d: %d clarifying question(s)",
                run.round,
                len(payload.questions),
            )
            answers = await self._collect_answers(payload, run.round)
            run.record_round(raw, answers)
