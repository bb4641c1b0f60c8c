from enum import Enum

from pydantic import BaseModel


class ReadinessEnum(str, Enum):
    FAIL = "fail"
    """The dependency cannot be used."""
    OK = "ok"
    """The dependency answered."""


class ReadinessCheckModel(BaseModel):
    id: str  # Collaborator name, e.g. "store"
    status: ReadinessEnum


class ReadinessModel(BaseModel):
    checks: list[ReadinessCheckModel]
    status: ReadinessEnum

    @classmethod
    def from_checks(cls, checks: dict[str, ReadinessEnum]) -> "ReadinessModel":
        """
        Aggregate the checks, the whole readiness fails if one of them fails.
        """
        return cls(
            checks=[
                ReadinessCheckModel(id=check_id, status=status)
                for check_id, status in checks.items()
            ],
            status=ReadinessEnum.OK
            if all(status == ReadinessEnum.OK for status in checks.values())
            else ReadinessEnum.FAIL,
        )
