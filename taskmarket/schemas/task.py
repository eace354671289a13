"""Schemas for tasks, quick tasks, market listings and their nested rows."""

from typing import Any, Literal

from pydantic import Field, HttpUrl, field_validator

from taskmarket.schemas.common import ApiModel

TaskType = Literal["SUMMARIZATION", "CAPTIONS", "DATA_EXTRACTION"]
TaskStatus = Literal["POSTED", "ASSIGNED", "IN_PROGRESS", "COMPLETED", "PAID", "FAILED"]


class TaskCreateRequest(ApiModel):
    """Body for POST /api/tasks."""

    type: TaskType
    title: str | None = None
    description: str | None = None
    source_url: HttpUrl | None = None
    input_text: str | None = None
    attachment_id: str | None = None
    payout_amount: str = Field(..., description="Decimal amount as a string, e.g. '0.25'.")
    payout_currency: str = "SOL"
    save_to_drive: bool | None = None


class TaskUpdateRequest(ApiModel):
    """Body for PATCH /api/tasks/{id}. Omitted fields are left unchanged."""

    status: TaskStatus | None = None
    assigned_agent_id: str | None = None
    title: str | None = None
    description: str | None = None
    result_text: str | None = None
    result_drive_file_id: str | None = None


class QuickTaskRequest(ApiModel):
    """Body for POST /api/tasks/quick. Needs a prompt or an attachment."""

    prompt: str | None = None
    attachment_id: str | None = None
    save_to_drive: bool = False
    deposit_tx_hash: str | None = None
    deposit_amount_sol: str | int | float | None = None

    @field_validator("deposit_amount_sol")
    @classmethod
    def _amount_as_text(cls, v: str | int | float | None) -> str | None:
        return None if v is None else str(v)


class PaymentOut(ApiModel):
    id: str
    task_id: str
    payer_user_id: str | None = None
    amount: str
    currency: str
    network: str
    mint: str | None = None
    status: str
    tx_hash: str | None = None
    settlement_sig: str | None = None
    challenge_id: str | None = None
    payment_request_url: str | None = None
    callback_url: str | None = None
    payer_wallet_address: str | None = None
    payee_wallet_address: str | None = None
    settled_at: str | None = None
    created_at: str


class ToolRunOut(ApiModel):
    id: str
    task_id: str
    tool: str
    input: Any = None
    output: Any = None
    success: bool
    created_at: str


class AgentOut(ApiModel):
    id: str
    user_id: str
    status: str


class DocumentOut(ApiModel):
    id: str
    user_id: str
    type: str
    storage: str
    name: str | None = None
    url: str | None = None


class TaskOut(ApiModel):
    id: str
    created_by_id: str | None = None
    assigned_agent_id: str | None = None
    type: str
    title: str | None = None
    description: str | None = None
    source_url: str | None = None
    input_text: str | None = None
    attachment_id: str | None = None
    payout_amount: str
    payout_currency: str
    status: str
    result_text: str | None = None
    result_drive_file_id: str | None = None
    save_to_drive: bool = False
    created_at: str
    updated_at: str
    payments: list[PaymentOut] | None = None


class TaskDetailOut(TaskOut):
    tool_runs: list[ToolRunOut] = Field(default_factory=list)
    assigned_agent: AgentOut | None = None
    attachment: DocumentOut | None = None


class MarketTaskOut(ApiModel):
    id: str
    title: str | None = None
    description: str | None = None
    type: str
    payout_amount: str
    payout_currency: str
    created_at: str


def dump(model: type[ApiModel], row: dict[str, Any], exclude_none_keys: tuple[str, ...] = ()) -> dict[str, Any]:
    """Validate a store row against a schema and serialize it with camelCase keys."""
    out = model.model_validate(row).model_dump(by_alias=True)
    for key in exclude_none_keys:
        if out.get(key) is None:
            out.pop(key, None)
    return out
