from typing import TYPE_CHECKING, Union

from typing_extensions import TypeAlias, TypeVar

if TYPE_CHECKING:
    from sqlrecord.exceptions import Failure

__all__ = ("RecordT", "ResultT", "WorkResult")

RecordT = TypeVar("RecordT")
"""Type variable for mapped record (dataclass) types."""
ResultT = TypeVar("ResultT")
"""Type variable for the success value of a unit of work."""

WorkResult: TypeAlias = Union[ResultT, "Failure"]
"""A unit of work either returns its value or a tagged failure."""
