"""Rule tables for slice composition and edge transitions.

Each table is keyed by the enum it dispatches on, so a new SliceType,
ElementType or SpecStepType without an entry shows up as a KeyError in the
table coverage tests rather than as a silent pass.
"""

from dataclasses import dataclass

from ..config import RulesConfig
from ..core.models import ElementType, SliceType, SpecStepType


@dataclass(frozen=True)
class CountRange:
    """Inclusive element count range; maximum None means unbounded."""

    minimum: int
    maximum: int | None

    def allows(self, count: int) -> bool:
        if count < self.minimum:
            return False
        return self.maximum is None or count <= self.maximum

    def describe(self) -> str:
        if self.maximum is None:
            return f"{self.minimum}+"
        if self.minimum == self.maximum:
            return str(self.minimum)
        return f"{self.minimum}-{self.maximum}"


EXACTLY_ONE = CountRange(1, 1)
NONE = CountRange(0, 0)
OPTIONAL_ONE = CountRange(0, 1)
ONE_OR_MORE = CountRange(1, None)


# sliceType -> element type -> allowed count
COMPOSITION_RULES: dict[SliceType, dict[ElementType, CountRange]] = {
    SliceType.STATE_CHANGE: {
        ElementType.COMMAND: EXACTLY_ONE,
        ElementType.EVENT: EXACTLY_ONE,
        ElementType.READMODEL: NONE,
        ElementType.SCREEN: OPTIONAL_ONE,
        ElementType.AUTOMATION: NONE,
    },
    SliceType.STATE_VIEW: {
        ElementType.COMMAND: NONE,
        ElementType.EVENT: NONE,
        ElementType.READMODEL: EXACTLY_ONE,
        ElementType.SCREEN: OPTIONAL_ONE,
        ElementType.AUTOMATION: NONE,
    },
    SliceType.AUTOMATION: {
        ElementType.COMMAND: EXACTLY_ONE,
        ElementType.EVENT: ONE_OR_MORE,
        ElementType.READMODEL: NONE,
        ElementType.SCREEN: NONE,
        ElementType.AUTOMATION: EXACTLY_ONE,
    },
}

# sliceType carrying an optional screen -> sliceType its predecessor must have
SCREEN_PREDECESSOR: dict[SliceType, SliceType | None] = {
    SliceType.STATE_CHANGE: SliceType.STATE_VIEW,
    SliceType.STATE_VIEW: SliceType.STATE_CHANGE,
    SliceType.AUTOMATION: None,
}

# (source type, target type) pairs an edge may connect
ALLOWED_TRANSITIONS: frozenset[tuple[ElementType, ElementType]] = frozenset(
    {
        (ElementType.COMMAND, ElementType.EVENT),
        (ElementType.EVENT, ElementType.READMODEL),
        (ElementType.READMODEL, ElementType.SCREEN),
        (ElementType.SCREEN, ElementType.COMMAND),
        (ElementType.READMODEL, ElementType.AUTOMATION),
        (ElementType.AUTOMATION, ElementType.COMMAND),
    }
)

EVENT_FED_AUTOMATION = (ElementType.EVENT, ElementType.AUTOMATION)

# Element types a processor may be fed by
AUTOMATION_FEEDS: frozenset[ElementType] = frozenset({ElementType.READMODEL})

# Step type -> element type its linkedId must resolve to (None: no link allowed)
SPEC_STEP_TARGETS: dict[SpecStepType, ElementType | None] = {
    SpecStepType.SPEC_EVENT: ElementType.EVENT,
    SpecStepType.SPEC_COMMAND: ElementType.COMMAND,
    SpecStepType.SPEC_READMODEL: ElementType.READMODEL,
    SpecStepType.SPEC_ERROR: None,
}


def allowed_transitions(
    rules: RulesConfig | None = None,
) -> frozenset[tuple[ElementType, ElementType]]:
    """Transition table in effect for a rules configuration."""
    if rules is not None and rules.allow_event_fed_automation:
        return ALLOWED_TRANSITIONS | {EVENT_FED_AUTOMATION}
    return ALLOWED_TRANSITIONS


def automation_feeds(rules: RulesConfig | None = None) -> frozenset[ElementType]:
    """Element types that count as a valid processor feed."""
    if rules is not None and rules.allow_event_fed_automation:
        return AUTOMATION_FEEDS | {ElementType.EVENT}
    return AUTOMATION_FEEDS
