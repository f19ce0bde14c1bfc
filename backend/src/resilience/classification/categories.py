"""Error pattern definitions for the classification table."""
from dataclasses import dataclass, field
from typing import Optional, Union

from ..types import ErrorCategory, ErrorCode, ErrorSeverity


@dataclass(frozen=True)
class ErrorPattern:
    """Pattern definition for one taxonomy entry.

    A pattern matches when every ``required`` keyword is present and at least
    one ``indicators`` keyword is present in the lowered message, or when the
    error carries one of ``error_codes``, or when it is an instance of one of
    ``exception_types``, or when one of ``stack_indicators`` appears in the
    lowered stack.
    """

    code: ErrorCode
    indicators: tuple[str, ...]
    severity: ErrorSeverity
    recoverable: bool
    category: ErrorCategory
    user_message: str
    suggestions: tuple[str, ...] = ()
    required: tuple[str, ...] = ()
    error_codes: tuple[Union[str, int], ...] = ()
    exception_types: tuple[type, ...] = ()
    stack_indicators: tuple[str, ...] = field(default=())

    def matches(
        self,
        message: str,
        stack: str = "",
        code: Optional[Union[str, int]] = None,
        error_type: Optional[type] = None
    ) -> bool:
        """Check the pattern against an already lowered message and stack."""
        if all(req in message for req in self.required) and any(
            ind in message for ind in self.indicators
        ):
            return True

        if code is not None and self.error_codes:
            if code in self.error_codes or str(code) in {str(c) for c in self.error_codes}:
                return True

        if error_type is not None and self.exception_types:
            if issubclass(error_type, self.exception_types):
                return True

        if stack and self.stack_indicators:
            return any(ind in stack for ind in self.stack_indicators)

        return False
