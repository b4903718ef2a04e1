from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession
from stockroom.models.support.activity_models import UserActivity
from stockroom.constants.activity_templates import ACTIVITY_TEMPLATES
from stockroom.constants.activity_codes import ActivityCode


def actor_context(user) -> dict:
    return {
        "actor_role": user.role.capitalize(),
        "actor_name": user.username,
    }


async def emit_activity(
    db: AsyncSession,
    *,
    user_id: int | None,
    username: str,
    code: ActivityCode,
    table_name: str | None = None,
    record_id: int | None = None,
    request: Request | None = None,
    **context,
):
    template = ACTIVITY_TEMPLATES.get(code)
    if not template:
        raise ValueError(f"No activity template for code {code}")

    try:
        message = template.format(**context)
    except KeyError as e:
        raise ValueError(
            f"Missing activity context key: {e.args[0]} for {code}"
        )

    ip_address = None
    user_agent = None
    if request is not None:
        ip_address = request.client.host if request.client else None
        user_agent = (request.headers.get("user-agent") or "")[:255] or None

    db.add(
        UserActivity(
            user_id=user_id,
            username_snapshot=username,
            code=code.value,
            table_name=table_name,
            record_id=record_id,
            message=message,
            ip_address=ip_address,
            user_agent=user_agent,
        )
    )
