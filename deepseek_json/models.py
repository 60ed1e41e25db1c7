"""Data shapes for chat messages, TaskFinisher payloads and outcomes.

Anything the model sends back is a pydantic model: field types are strict
(a JSON boolean is never an integer, a number is never a string) and unknown
keys are dropped. Local bookkeeping (messages, parse results, outcomes) stays
in plain dataclasses.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr
from pydantic import field_validator, model_validator


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    role: Role
    content: str


class WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class StructuredResponse(WireModel):
    title: StrictStr
    description: StrictStr
    content: StrictStr
    category: StrictStr | None = None
    timestamp: StrictStr | None = None
    confidence: StrictFloat | None = None


# --- clarifying questions ---

class ChecklistStatus(str, Enum):
    MISSING = "missing"
    PARTIAL = "partial"
    COMPLETE = "complete"


class ClarifyingQuestion(WireModel):
    id: StrictStr
    text: StrictStr
    required: StrictBool
    options: list[StrictStr] | None = None

    @field_validator("options")
    @classmethod
    def _empty_options_mean_none(cls, v: list[str] | None) -> list[str] | None:
        return v or None


class ChecklistItem(WireModel):
    field: StrictStr
    status: ChecklistStatus


class ClarifyingPayload(WireModel):
    turn: StrictInt
    max_questions: StrictInt
    questions: list[ClarifyingQuestion]
    checklist: list[ChecklistItem]
    next_action: StrictStr

    @model_validator(mode="after")
    def _unique_question_ids(self) -> "ClarifyingPayload":
        seen: set[str] = set()
        for q in self.questions:
            if q.id in seen:
                raise ValueError(f"duplicate question id {q.id!r}")
            seen.add(q.id)
        return self


class AnswerItem(WireModel):
    id: StrictStr
    answer: StrictStr


class AnswersPayload(WireModel):
    answers: list[AnswerItem] = Field(default_factory=list)


# --- technical task artifact ---

class Stakeholder(WireModel):
    role: StrictStr
    description: StrictStr


class Scope(WireModel):
    in_scope: list[StrictStr]
    out_of_scope: list[StrictStr]


class FunctionalRequirement(WireModel):
    id: StrictStr
    statement: StrictStr
    rationale: StrictStr | None = None


class NonFunctionalRequirement(WireModel):
    id: StrictStr
    category: StrictStr
    target: StrictStr


class Requirements(WireModel):
    functional: list[FunctionalRequirement]
    non_functional: list[NonFunctionalRequirement]


class RpcProviders(WireModel):
    selection: list[StrictStr]
    endpoints: dict[str, Any]


class PriceSource(WireModel):
    provider: StrictStr
    ttl_seconds: Annotated[StrictInt, Field(ge=0)] | None = None


class DataIntegrations(WireModel):
    rpc_providers: RpcProviders
    price_source: PriceSource


class Risk(WireModel):
    id: StrictStr
    description: StrictStr
    mitigation: StrictStr


class Milestone(WireModel):
    id: StrictStr
    name: StrictStr
    deliverables: list[StrictStr]


class AcceptanceCriterion(WireModel):
    id: StrictStr
    given: StrictStr
    when: StrictStr
    then: StrictStr


class Artifact(WireModel):
    artifact_name: StrictStr     # "technical_task"
    version: StrictStr           # "1.0"
    title: StrictStr
    summary: StrictStr
    stakeholders: list[Stakeholder]
    scope: Scope
    requirements: Requirements
    data_integrations: DataIntegrations
    constraints: list[StrictStr]
    assumptions: list[StrictStr]
    risks: list[Risk]
    milestones: list[Milestone]
    acceptance_criteria: list[AcceptanceCriterion]
    open_questions: list[StrictStr]
    status: StrictStr            # "final"
    end_token: StrictStr         # "【END】"


# --- parse results ---

@dataclass
class Clarifying:
    payload: ClarifyingPayload
    raw_text: str


@dataclass
class ArtifactReply:
    artifact: Artifact
    raw_text: str


NegotiationResult = Clarifying | ArtifactReply


class OutcomeStatus(str, Enum):
    ARTIFACT = "artifact"
    ROUND_CAP_EXCEEDED = "round_cap_exceeded"
    PARSE_FAILURE = "parse_failure"


@dataclass
class NegotiationOutcome:
    status: OutcomeStatus
    rounds: int
    raw_text: str
    history: tuple[Message, ...]
    artifact: Artifact | None = None
    last_payload: ClarifyingPayload | None = None
    error: Exception | None = None   # the parse error on PARSE_FAILURE

    @property
    def succeeded(self) -> bool:
        return self.status is OutcomeStatus.ARTIFACT
