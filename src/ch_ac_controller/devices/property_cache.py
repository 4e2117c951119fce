"""Last-known device state keyed by wire parameter code."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from numbers import Real

from ch_ac_controller.protocol.exceptions import ProtocolViolationError

PropertyValue = int | float


class PropertyCache:
    """Map of parameter code to the last value the device reported.

    ``get`` returns None for a code the device never reported, which is
    distinct from a reported ``0``. Entries only change through ``update``
    (from ``dat``/``res`` replies) or ``clear`` (on rebinding).
    """

    def __init__(self) -> None:
        self._props: dict[str, PropertyValue] = {}

    def get(self, code: str) -> PropertyValue | None:
        return self._props.get(code)

    def __contains__(self, code: object) -> bool:
        return code in self._props

    def __len__(self) -> int:
        return len(self._props)

    def __iter__(self) -> Iterator[str]:
        return iter(self._props)

    def update(self, codes: Sequence[object], values: Sequence[object]) -> dict[str, PropertyValue]:
        """Apply parallel ``codes``/``values`` arrays.

        The whole update is validated before anything is written, so a bad
        reply leaves the cache exactly as it was.

        Returns:
            The entries whose value changed (or appeared)

        Raises:
            ProtocolViolationError: On length mismatch, a non-string code or a non-numeric value
        """
        if len(codes) != len(values):
            reason = f"length_mismatch:{len(codes)}!={len(values)}"
            raise ProtocolViolationError(reason)

        staged: list[tuple[str, PropertyValue]] = []
        for code, value in zip(codes, values, strict=True):
            if not isinstance(code, str) or not code:
                reason = f"invalid_code:{code!r}"
                raise ProtocolViolationError(reason)
            # bool is an int subclass but never a valid reading
            if isinstance(value, bool) or not isinstance(value, Real):
                reason = f"non_numeric_value:{code}={value!r}"
                raise ProtocolViolationError(reason)
            staged.append((code, value))  # type: ignore[arg-type]

        changed: dict[str, PropertyValue] = {}
        for code, value in staged:
            if self._props.get(code) != value or code not in self._props:
                changed[code] = value
            self._props[code] = value
        return changed

    def clear(self) -> None:
        self._props.clear()

    def as_dict(self) -> dict[str, PropertyValue]:
        return dict(self._props)

    def __repr__(self) -> str:
        return f"PropertyCache({self._props!r})"
