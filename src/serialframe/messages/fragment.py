"""Pattern elements and message fragments.

A fragment is one named slice of a message. It contributes an optional
fixed-length *pattern* used for recognition and an optional *default* used
for generation. Pattern elements form a small tagged variant:

- ``Literal``: one fixed byte, must match exactly
- ``Wildcard``: one arbitrary byte
- ``Computed``: a generation rule ``func(precedent) -> bytes``

Only ``Literal`` and ``Wildcard`` can appear in a pattern. ``Computed`` is
only accepted as a default, so a template can never ask the matcher to
evaluate a function.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Tuple, Union

from ..exceptions import InvalidFragmentDefault, TemplateError


@dataclass(frozen=True)
class Literal:
    """A pattern element matching exactly one byte value."""

    value: int

    def __post_init__(self) -> None:
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise TemplateError(f"Literal byte must be an int, got {self.value!r}")
        if not 0 <= self.value <= 0xFF:
            raise TemplateError(f"Literal byte must be 0-255, got {self.value}")

    def accepts(self, byte: int) -> bool:
        return byte == self.value

    def __repr__(self) -> str:
        return f"0x{self.value:02X}"


class Wildcard:
    """A pattern element matching any single byte.

    Use the module-level ``WILDCARD`` instance.
    """

    _instance: Optional[Wildcard] = None

    def __new__(cls) -> Wildcard:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def accepts(self, byte: int) -> bool:
        return True

    def __repr__(self) -> str:
        return "*"


WILDCARD = Wildcard()


@dataclass(frozen=True)
class Computed:
    """A generation rule computing fragment bytes from the precedent.

    The function receives the bytes of the current message emitted so far
    (the *precedent*) and returns the bytes of this fragment.

    Example:
        >>> checksum = Computed(lambda precedent: bytes([sum(precedent) % 256]))
        >>> checksum(b"\\x01\\x02")
        b'\\x03'
    """

    func: Callable[[bytes], Any]

    def __post_init__(self) -> None:
        if not callable(self.func):
            raise InvalidFragmentDefault(f"Computed element needs a callable, got {self.func!r}")

    def __call__(self, precedent: bytes) -> bytes:
        result = self.func(precedent)
        if isinstance(result, (bytes, bytearray, memoryview)):
            return bytes(result)
        if isinstance(result, (list, tuple)) and all(
            isinstance(b, int) and 0 <= b <= 0xFF for b in result
        ):
            return bytes(result)
        raise InvalidFragmentDefault(
            f"Computed default {getattr(self.func, '__name__', self.func)!r} "
            f"returned {type(result).__name__}, expected bytes"
        )


PatternElement = Union[Literal, Wildcard]
PatternLike = Union[bytes, bytearray, Iterable[Union[int, None, Literal, Wildcard]]]
DefaultLike = Union[bytes, bytearray, Iterable[int], Computed, Callable[[bytes], Any]]


def parse_pattern(pattern: Optional[PatternLike]) -> Optional[Tuple[PatternElement, ...]]:
    """Normalize a pattern shorthand into a tuple of pattern elements.

    Accepted shorthands:
        - ``bytes``/``bytearray``: every byte becomes a ``Literal``
        - a sequence of ints (literal), ``None`` (wildcard), ``Literal`` or
          ``Wildcard`` elements

    Args:
        pattern: Pattern shorthand, or None for "no fixed pattern"

    Returns:
        Tuple of pattern elements, or None

    Raises:
        TemplateError: If an element is a ``Computed`` or of unsupported type
    """
    if pattern is None:
        return None

    if isinstance(pattern, (bytes, bytearray)):
        return tuple(Literal(b) for b in pattern)

    elements: list[PatternElement] = []
    for item in pattern:
        if item is None or isinstance(item, Wildcard):
            elements.append(WILDCARD)
        elif isinstance(item, Literal):
            elements.append(item)
        elif isinstance(item, Computed) or callable(item):
            raise TemplateError(
                "Computed elements cannot be used in a pattern; "
                "use them as a fragment default instead"
            )
        elif isinstance(item, int) and not isinstance(item, bool):
            elements.append(Literal(item))
        else:
            raise TemplateError(f"Unsupported pattern element {item!r}")
    return tuple(elements)


def parse_default(default: Optional[DefaultLike], name: str = "") -> Optional[bytes | Computed]:
    """Normalize a fragment default into bytes or a ``Computed``.

    Raises:
        InvalidFragmentDefault: If the default is neither bytes-like nor callable
    """
    if default is None or isinstance(default, Computed):
        return default
    if isinstance(default, (bytes, bytearray)):
        return bytes(default)
    if callable(default):
        return Computed(default)
    if isinstance(default, (list, tuple)):
        try:
            return bytes(default)
        except (TypeError, ValueError) as e:
            raise InvalidFragmentDefault(f"Invalid default value for {name}: {e}") from e
    raise InvalidFragmentDefault(f"Invalid default value for {name}: {default!r}")


@dataclass(frozen=True)
class Fragment:
    """One named slice of a message.

    Attributes:
        name: Identifier, unique within a template
        pattern: Fixed-length tuple of ``Literal``/``Wildcard`` elements, or
            None when the fragment is only ever generated
        default: Literal bytes or a ``Computed`` rule used during generation
            when no override is supplied
        description: Free-form documentation
    """

    name: str
    pattern: Optional[Tuple[PatternElement, ...]] = None
    default: Optional[bytes | Computed] = None
    description: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name:
            raise TemplateError(f"Fragment name must be a non-empty string, got {self.name!r}")
        # Accept shorthands; frozen dataclass needs object.__setattr__
        object.__setattr__(self, "pattern", parse_pattern(self.pattern))
        object.__setattr__(self, "default", parse_default(self.default, self.name))

    @property
    def length(self) -> Optional[int]:
        """Pattern length in bytes, or None when there is no pattern."""
        return None if self.pattern is None else len(self.pattern)

    @property
    def literal_bytes(self) -> Optional[bytes]:
        """The pattern as bytes when every element is a literal, else None."""
        if not self.pattern or not all(isinstance(e, Literal) for e in self.pattern):
            return None
        return bytes(e.value for e in self.pattern)  # type: ignore[union-attr]


def literal(name: str, data: bytes | Iterable[int], **kwargs: Any) -> Fragment:
    """Create a fragment with a fixed byte pattern.

    Example:
        >>> header = literal("hdr", b"\\xAA")
        >>> header.literal_bytes
        b'\\xaa'
    """
    data = bytes(data)
    return Fragment(name, pattern=data, **kwargs)


def wildcard(name: str, length: int = 1, default: Optional[DefaultLike] = None, **kwargs: Any) -> Fragment:
    """Create a fragment matching ``length`` arbitrary bytes.

    Example:
        >>> ident = wildcard("id", 1)
        >>> ident.length
        1
    """
    if length <= 0:
        raise TemplateError(f"Wildcard length must be > 0, got {length}")
    return Fragment(name, pattern=(WILDCARD,) * length, default=default, **kwargs)


def computed(
    name: str,
    func: Callable[[bytes], Any],
    length: Optional[int] = None,
    **kwargs: Any,
) -> Fragment:
    """Create a fragment whose value is computed from the precedent.

    When ``length`` is given the fragment is recognized as that many
    wildcard bytes; without it the fragment is generation-only.

    Example:
        >>> chk = computed("sum", lambda p: bytes([sum(p) % 256]), length=1)
        >>> chk.length
        1
    """
    pattern = None if length is None else (WILDCARD,) * length
    return Fragment(name, pattern=pattern, default=func, **kwargs)
