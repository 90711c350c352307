"""Reminder job tools: schedule, remove and list push-message jobs."""

from datetime import datetime, timedelta
from typing import Any, Literal

from pydantic import Field

from lio_agent.agent.tools.base import NoArgs, Tool, ToolArgs
from lio_agent.store.base import JobStore
from lio_agent.store.models import Job, JobParameters, JobPayload

GRANULARITY_MINUTES = 5


class ScheduleError(ValueError):
    """Raised for schedules the reminder runner cannot honour."""


def _round_minute(value: int) -> int:
    rounded = int(round(value / GRANULARITY_MINUTES)) * GRANULARITY_MINUTES
    return min(rounded, 60 - GRANULARITY_MINUTES)


def _normalize_cron_minute(field: str) -> str:
    if field == "*":
        raise ScheduleError("cron 的分鐘欄位不可為 *，最小單位為五分鐘")
    if field.startswith("*/"):
        step = field[2:]
        if not step.isdigit() or int(step) == 0:
            raise ScheduleError(f"無效的分鐘間隔：{field}")
        rounded = max(GRANULARITY_MINUTES, _round_minute(int(step)))
        return f"*/{rounded}"
    parts = field.split(",")
    if all(p.isdigit() for p in parts):
        values = sorted({_round_minute(int(p)) for p in parts})
        return ",".join(str(v) for v in values)
    return field


def normalize_schedule(schedule: str, kind: str) -> str:
    """
    Validate a schedule and snap it to the 5-minute grid.

    Cron schedules must have five fields (minute hour day month weekday);
    one-time schedules must be a date-time such as "2025-03-18 15:00".

    Raises:
        ScheduleError: The schedule is malformed or finer than five minutes.
    """
    text = schedule.strip()
    if kind == "cron":
        fields = text.split()
        if len(fields) != 5:
            raise ScheduleError(f"cron 表達式必須有五個欄位：{schedule}")
        fields[0] = _normalize_cron_minute(fields[0])
        return " ".join(fields)

    try:
        when = datetime.fromisoformat(text.replace("T", " ").replace("/", "-"))
    except ValueError as e:
        raise ScheduleError(f"無法解析的時間：{schedule}") from e
    when = when.replace(second=0, microsecond=0, tzinfo=None)
    remainder = when.minute % GRANULARITY_MINUTES
    if remainder:
        if remainder * 2 >= GRANULARITY_MINUTES:
            when += timedelta(minutes=GRANULARITY_MINUTES - remainder)
        else:
            when -= timedelta(minutes=remainder)
    return when.strftime("%Y-%m-%d %H:%M")


class ScheduleJobArgs(ToolArgs):
    name: str = Field(min_length=1, description="提醒的名稱。")
    schedule: str = Field(min_length=1, description="cron 表達式（五個欄位）或具體時間（YYYY-MM-DD HH:mm，台北時間）。")
    type: Literal["one-time", "cron"] = Field(description="one-time 為單次提醒，cron 為定期提醒。")
    message: str = Field(min_length=1, description="提醒時發送的訊息。")


class JobIdArgs(ToolArgs):
    id: str = Field(min_length=1, description="要刪除的提醒的 UUID。")


class _JobTool(Tool):
    def __init__(self, store: JobStore, user_id: str):
        self._store = store
        self._user_id = user_id


class ScheduleJobTool(_JobTool):
    """Create a push-message reminder."""

    args_model = ScheduleJobArgs

    @property
    def name(self) -> str:
        return "scheduleJob"

    @property
    def description(self) -> str:
        return "設定提醒任務，時間最小單位為五分鐘。"

    async def execute(
        self, name: str, schedule: str, type: str, message: str, **kwargs: Any
    ) -> str:
        try:
            normalized = normalize_schedule(schedule, type)
        except ScheduleError as e:
            return f"無法設定提醒：{e}"

        job = await self._store.create_job(
            Job(
                user_id=self._user_id,
                name=name,
                schedule=normalized,
                type=type,
                parameters=JobParameters(payload=JobPayload(message=message)),
            )
        )
        result = f"提醒設定成功：{job.name}（{job.schedule}，{job.type}）"
        if normalized != " ".join(schedule.split()):
            result += f"。時間已調整為最接近的五分鐘：{normalized}"
        return result


class RemoveJobTool(_JobTool):
    """Delete a reminder."""

    args_model = JobIdArgs

    @property
    def name(self) -> str:
        return "removeJob"

    @property
    def description(self) -> str:
        return "移除提醒任務。"

    async def execute(self, id: str, **kwargs: Any) -> str:
        if not await self._store.delete_job_by_id(id, user_id=self._user_id):
            return "無法刪除提醒。找不到這個提醒。"
        return "提醒刪除成功。"


class GetJobsTool(_JobTool):
    """List reminders."""

    args_model = NoArgs

    @property
    def name(self) -> str:
        return "getJobs"

    @property
    def description(self) -> str:
        return "獲取用戶的所有排程提醒。"

    async def execute(self, **kwargs: Any) -> str:
        jobs = await self._store.get_jobs_by_user_id(self._user_id)
        if not jobs:
            return "目前沒有任何排程任務。"
        return "\n".join(
            f"ID: {j.id}, {j.name}（{j.type}: {j.schedule}，狀態: {j.status}）訊息: {j.parameters.payload.message}"
            for j in jobs
        )
