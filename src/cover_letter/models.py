"""Data models for the cover letter session."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum


class Phase(Enum):
    """Coarse stage of the wizard."""
    SETUP = "setup"
    CHAT = "chat"
    END = "end"


class Stage(Enum):
    """Controller sub-state. Each stage belongs to exactly one phase."""
    AWAITING_DESCRIPTION = "awaiting_description"
    AWAITING_FILE = "awaiting_file"
    LOADING_FILE = "loading_file"
    AWAITING_TURN = "awaiting_turn"
    AWAITING_REPLY = "awaiting_reply"
    FINISHED = "finished"
    TERMINATED = "terminated"

    @property
    def phase(self) -> Phase:
        return _STAGE_PHASES[self]


_STAGE_PHASES = {
    Stage.AWAITING_DESCRIPTION: Phase.SETUP,
    Stage.AWAITING_FILE: Phase.SETUP,
    Stage.LOADING_FILE: Phase.SETUP,
    Stage.AWAITING_TURN: Phase.CHAT,
    Stage.AWAITING_REPLY: Phase.CHAT,
    Stage.FINISHED: Phase.END,
    Stage.TERMINATED: Phase.END,
}


class Role(Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


# Display prefix per role, used when rendering the transcript
ROLE_PREFIXES = {
    Role.USER: "You: ",
    Role.ASSISTANT: "Assistant: ",
    Role.SYSTEM: "System: ",
}


@dataclass(frozen=True)
class Turn:
    """A single role-tagged message in the conversation."""

    role: Role
    content: str
    notice: bool = False  # Shown in the transcript, never sent to the assistant

    def to_message(self) -> dict[str, str]:
        """Convert to an OpenAI-style chat message dict."""
        return {"role": self.role.value, "content": self.content}


@dataclass
class SessionContext:
    """User-supplied context collected during setup.

    Each field is write-once: after it holds a non-empty value it can never be
    cleared or replaced.
    """

    job_description: str = ""
    reference_document: str = ""

    def set_job_description(self, value: str) -> None:
        if self.job_description:
            raise ValueError("job description is already set")
        self.job_description = value

    def set_reference_document(self, value: str) -> None:
        if self.reference_document:
            raise ValueError("reference document is already set")
        self.reference_document = value


@dataclass
class ConversationLog:
    """Ordered, append-only record of chat turns.

    The first entry is always the seed system turn passed at construction.
    """

    seed: Turn
    _turns: list[Turn] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.seed.role is not Role.SYSTEM:
            raise ValueError("conversation log must be seeded with a system turn")
        self._turns.append(self.seed)

    def __len__(self) -> int:
        return len(self._turns)

    def __iter__(self) -> Iterator[Turn]:
        return iter(tuple(self._turns))

    def append(self, turn: Turn) -> None:
        self._turns.append(turn)

    def transcript(self) -> tuple[Turn, ...]:
        """Every turn in order, notices included."""
        return tuple(self._turns)

    def snapshot_for_transmission(self) -> tuple[Turn, ...]:
        """Return an immutable ordered copy safe to hand to another thread.

        Notices are left out.
        """
        return tuple(turn for turn in self._turns if not turn.notice)

    def last(self, role: Role) -> Turn | None:
        """Return the most recent turn with the given role, if any."""
        for turn in reversed(self._turns):
            if turn.role is role:
                return turn
        return None

    def render(self) -> str:
        """Render every turn after the seed with its role prefix."""
        lines = [ROLE_PREFIXES[turn.role] + turn.content for turn in self._turns[1:]]
        return "\n\n".join(lines)
