"""Type aliases using modern PEP 695 syntax."""

from collections.abc import Callable, Mapping

from dirstat.types.models import ExtensionRecord

# Called once per enumerated entry and once per scheduled child so a host
# can pump its own events during long synchronous work.
type YieldHook = Callable[[], None]

# Extension (lower-cased, with leading dot) to accumulated statistics
type ExtensionData = Mapping[str, ExtensionRecord]

# Monotonic clock returning seconds
type Clock = Callable[[], float]
