from datetime import datetime, timedelta, timezone

from employee_service.core.errors import InvalidArgument

# updated_at(버전 토큰)은 밀리초 단위로 저장/비교
VERSION_RESOLUTION = timedelta(milliseconds=1)


def _truncate_to_millis(value: datetime) -> datetime:
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def to_utc(value: datetime) -> datetime:
    """naive datetime은 UTC로 간주하고, aware datetime은 UTC로 변환."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    try:
        return value.astimezone(timezone.utc)
    except OverflowError as exc:
        # 0001-01-01T00:00:00+01:00 처럼 UTC로 옮기면 datetime 범위를 벗어나는 값
        raise InvalidArgument("Invalid updated_at timestamp") from exc


def to_storage(value: datetime) -> datetime:
    """DB 저장용: UTC naive + 밀리초 절삭 (MySQL DATETIME / SQLite 모두 tz 정보를 안 남김)."""
    return _truncate_to_millis(to_utc(value).replace(tzinfo=None))


def utc_now() -> datetime:
    return to_storage(datetime.now(timezone.utc))


def next_version(previous: datetime) -> datetime:
    """
    갱신 시 새 updated_at.
    같은 밀리초 안에 연속으로 갱신되어도 항상 이전 값보다 커야 한다.
    """
    now = utc_now()
    floor = to_storage(previous) + VERSION_RESOLUTION
    return now if now >= floor else floor


def parse_timestamp(value: datetime | str) -> datetime:
    """ISO-8601 문자열/datetime → datetime. UTC로 표현할 수 없는 값도 InvalidArgument."""
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            pass
    if not isinstance(value, datetime):
        raise InvalidArgument("Invalid updated_at timestamp")
    to_utc(value)
    return value


def same_instant(left: datetime | str, right: datetime | str) -> bool:
    """
    문자열이 아니라 시각 자체를 밀리초 정밀도로 비교.
    '2024-01-01T09:00:00+09:00' 과 '2024-01-01T00:00:00.000Z' 는 같은 값이다.
    """
    return to_storage(parse_timestamp(left)) == to_storage(parse_timestamp(right))
