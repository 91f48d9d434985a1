from enum import Enum
from typing import NamedTuple
import resource


class LimitType(Enum):
	Files = resource.RLIMIT_NOFILE


REASONABLE_LIMITS: dict[LimitType, int] = {
	# Each open connection and each streamed file takes a descriptor
	LimitType.Files: 10 * 10240,
}


class Limit(NamedTuple):
	type: LimitType
	soft: int
	hard: int


def limit(scope: LimitType) -> Limit:
	return Limit(scope, *resource.getrlimit(scope.value))


def unlimit(
	scope: LimitType, ratio: float = 1.0, *, maximum: int | None = 0
) -> int | bool:
	"""Raises the soft limit for the given scope towards the hard limit,
	returning the new limit or `False` when it could not be changed."""
	lm = limit(scope)
	try:
		target = int(lm.soft + ratio * (lm.hard - lm.soft))
		# Darwin reports really high hard limits that lead to OverflowErrors.
		maximum = REASONABLE_LIMITS.get(scope) if maximum == 0 else maximum
		if maximum:
			target = min(maximum, target)
		if lm.hard != resource.RLIM_INFINITY:
			target = min(lm.hard, target)
		resource.setrlimit(scope.value, (target, lm.hard))
		return target
	except (ValueError, OSError):
		return False


# EOF
