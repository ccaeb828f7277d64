"""Pattern validation and matching for vanity address search."""

from dataclasses import dataclass, field
from enum import Enum

from evm_vanity.core import ADDRESS_HEX_LENGTH

HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


class ValidationErrorKind(Enum):
    EMPTY = "empty"
    INVALID_HEX = "invalid_hex"
    TOO_LONG = "too_long"


class ValidationError(ValueError):
    """Raised by build_pattern() for unusable prefix/suffix input."""

    def __init__(self, kind: ValidationErrorKind, message: str):
        super().__init__(message)
        self.kind = kind


@dataclass(frozen=True)
class PatternSpec:
    """Immutable, picklable pattern specification for workers.

    Construction validates the pattern and raises ValidationError if both
    sides are empty, if either contains non-hex characters, or if either is
    longer than an address. When case_sensitive is False, prefix and suffix
    are stored lower-case and addresses are lower-cased before comparison.
    """
    prefix: str
    suffix: str
    case_sensitive: bool = False
    difficulty: int = field(init=False, compare=False)

    def __post_init__(self):
        _validate(self.prefix, self.suffix)
        if not self.case_sensitive:
            object.__setattr__(self, "prefix", self.prefix.lower())
            object.__setattr__(self, "suffix", self.suffix.lower())
        object.__setattr__(
            self, "difficulty", 16 ** (len(self.prefix) + len(self.suffix))
        )

    @property
    def target(self) -> str:
        """Human-readable target, e.g. 0xcafe...beef."""
        return f"0x{self.prefix}...{self.suffix}"

    def matches(self, address: str) -> bool:
        """Test a "0x"-prefixed address against prefix and suffix."""
        if not self.case_sensitive:
            address = address.lower()
        if self.prefix and not address.startswith("0x" + self.prefix):
            return False
        if self.suffix and not address.endswith(self.suffix):
            return False
        return True


def build_pattern(prefix: str = "", suffix: str = "", case_sensitive: bool = False) -> PatternSpec:
    """Build a PatternSpec from raw user input.

    A leading "0x" is stripped from the prefix only; see PatternSpec for the
    checks that follow.
    """
    prefix = prefix or ""
    suffix = suffix or ""
    if prefix.startswith("0x"):
        prefix = prefix[2:]
    return PatternSpec(prefix=prefix, suffix=suffix, case_sensitive=case_sensitive)


def _validate(prefix: str, suffix: str) -> None:
    if not prefix and not suffix:
        raise ValidationError(
            ValidationErrorKind.EMPTY, "Provide a prefix or a suffix."
        )
    bad = sorted(set(c for c in prefix + suffix if c not in HEX_DIGITS))
    if bad:
        raise ValidationError(
            ValidationErrorKind.INVALID_HEX,
            f"Pattern contains non-hex characters: {', '.join(repr(c) for c in bad)}. "
            "Only 0-9 and a-f are valid.",
        )
    for name, value in (("Prefix", prefix), ("Suffix", suffix)):
        if len(value) > ADDRESS_HEX_LENGTH:
            raise ValidationError(
                ValidationErrorKind.TOO_LONG,
                f"{name} length {len(value)} exceeds address length of "
                f"{ADDRESS_HEX_LENGTH} hex chars.",
            )

