from __future__ import annotations

from typing import Iterable, Optional, Union

from .counter import Counter

OutputValues = Iterable[Union[int, Counter]]


class EncodingError(ValueError):
    """Raised when captured output cannot be turned into text.

    ``position`` and ``value`` identify the first out-of-range value; both are
    ``None`` when the bytes were in range but not valid in the encoding, or
    when the encoding is not a text codec.
    """

    def __init__(
        self,
        message: str,
        position: Optional[int] = None,
        value: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.position = position
        self.value = value


def to_bytes(output: OutputValues) -> bytes:
    data = bytearray()
    for position, item in enumerate(output):
        if isinstance(item, Counter):
            value = item.value
        elif isinstance(item, int):
            value = item
        else:
            raise EncodingError(
                f"Output value {item!r} at position {position} is not an integer",
                position=position,
            )
        if not 0 <= value <= 255:
            raise EncodingError(
                f"Output value {value} at position {position} does not fit in a byte",
                position=position,
                value=value,
            )
        data.append(value)
    return bytes(data)


def decode(output: OutputValues, encoding: str = "utf-8") -> str:
    data = to_bytes(output)
    try:
        return data.decode(encoding)
    except UnicodeDecodeError as exc:
        raise EncodingError(f"Output is not valid {encoding}: {exc.reason}") from exc
    except LookupError as exc:
        raise EncodingError(f"Unsupported text encoding: {encoding}") from exc


def try_decode(output: OutputValues, encoding: str = "utf-8") -> Optional[str]:
    try:
        return decode(output, encoding)
    except EncodingError:
        return None


__all__ = ["EncodingError", "OutputValues", "decode", "to_bytes", "try_decode"]
