"""AI collaborator using litellm, openai SDK, or claude-code subprocess."""

import logging
import shutil
import subprocess
from collections.abc import Sequence

import litellm
import openai

from .models import Role, Turn

logger = logging.getLogger(__name__)

# Suppress litellm's verbose debug/info logging
litellm.suppress_debug_info = True

# Seed system turn placed at the head of every conversation log
SEED_PROMPT = (
    "Your job is to help the user create a tailored cover letter based on "
    "the job description, and the user's experience."
)

# Sent once, when the reference document has been read
OPENING_PROMPT = (
    "Here is the user's information. Based on the job that they are applying for, "
    "and the user's experience, generate the first draft of a cover letter. "
    "Make the cover letter concise, and only write about the parts of the user's "
    "experience that could be relevant to the job description. "
    "No more than 2 paragraphs. Then, ask the user if they would like to make any "
    "modifications.\n\n"
    "Job Description:\n{job_description}\n\n"
    "User Experience:\n{reference_document}"
)

# Stands in for the user when a request would otherwise hold only system turns
BEGIN_TURN = Turn(Role.USER, "Begin.")

# Sent with every later exchange so the model keeps the user's context
CONTEXT_PROMPT = (
    "Keep working on the user's cover letter. Apply the user's requested changes "
    "to the latest draft and reply with the full revised letter unless they ask "
    "something else.\n\n"
    "Job Description:\n{job_description}\n\n"
    "User Experience:\n{reference_document}"
)


def seed_turn() -> Turn:
    return Turn(Role.SYSTEM, SEED_PROMPT)


def build_request(system_prompt: Turn, history: Sequence[Turn]) -> list[Turn]:
    """Order the turns sent for one exchange.

    The leading system turns of ``history`` (the seed) come first, then
    ``system_prompt``, then the rest of the conversation. Every request holds
    at least one non-system turn; an opening request gets ``BEGIN_TURN``.
    """
    lead = 0
    while lead < len(history) and history[lead].role is Role.SYSTEM:
        lead += 1
    turns = [*history[:lead], system_prompt, *history[lead:]]
    if all(turn.role is Role.SYSTEM for turn in turns):
        turns.append(BEGIN_TURN)
    return turns


def opening_turn(job_description: str, reference_document: str) -> Turn:
    """Build the system turn that asks for the first draft."""
    return Turn(
        Role.SYSTEM,
        OPENING_PROMPT.format(
            job_description=job_description,
            reference_document=reference_document,
        ),
    )


def context_turn(job_description: str, reference_document: str) -> Turn:
    """Build the system turn sent alongside every follow-up exchange."""
    return Turn(
        Role.SYSTEM,
        CONTEXT_PROMPT.format(
            job_description=job_description,
            reference_document=reference_document,
        ),
    )


class AssistantError(Exception):
    """Raised when the AI provider cannot produce a reply.

    ``reason`` is a short, user-presentable explanation.
    """

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class Assistant:
    """Blocking chat client. Call from a worker thread, never the UI loop."""

    def __init__(
        self,
        model: str,
        api_base: str | None = None,
        api_key: str | None = None,
        timeout: float = 60.0,
        max_tokens: int = 1024,
        temperature: float = 0.7,
    ):
        self.model = model
        self.api_base = api_base.rstrip("/") if api_base else None
        self.api_key = api_key
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature

        # Preflight check for claude-code provider
        if self.model.startswith("claude-code/") and not shutil.which("claude"):
            logger.warning(
                "claude-code provider selected but 'claude' CLI not found on PATH. "
                "Replies will fail. Install Claude Code or switch provider: "
                "cover-letter config --llm-preset <provider>"
            )

    def converse(self, system_prompt: Turn, history: Sequence[Turn]) -> Turn:
        """Send ``system_prompt`` with ``history`` and return the reply.

        The request is ordered by ``build_request``.

        Raises:
            AssistantError: on connection failure, timeout, or provider error.
        """
        try:
            content = self._call_llm(build_request(system_prompt, history))
        except (litellm.exceptions.APIConnectionError, openai.APIConnectionError, ConnectionError) as e:
            logger.debug(f"Assistant: {self.model} server not available: {e}")
            raise AssistantError("server unavailable") from e
        except (litellm.exceptions.Timeout, openai.APITimeoutError, subprocess.TimeoutExpired) as e:
            logger.debug(f"Assistant: {self.model} request timed out")
            raise AssistantError("timeout") from e
        except Exception as e:
            logger.debug(f"Assistant error ({self.model}): {e}")
            raise AssistantError(f"error: {type(e).__name__}") from e

        if not content:
            raise AssistantError("empty reply")
        return Turn(Role.ASSISTANT, content)

    def _call_llm(self, turns: list[Turn]) -> str:
        """Call LLM via litellm, openai SDK, or claude-code subprocess.

        Routing:
        - claude-code/* → subprocess
        - api_base set  → openai SDK direct (local/custom servers)
        - otherwise     → litellm (cloud providers with auto-routing)
        """
        if self.model.startswith("claude-code/"):
            return self._call_claude_code(turns)

        messages = [turn.to_message() for turn in turns]

        if self.api_base:
            # Local/custom OpenAI-compatible server: use openai SDK directly
            # to avoid litellm model-name parsing and auth issues.
            from openai import OpenAI
            client = OpenAI(
                base_url=self.api_base,
                api_key=self.api_key or "no-key-required",
                timeout=self.timeout,
            )
            response = client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )
        else:
            # Cloud provider: use litellm for routing (openai/, anthropic/, etc.)
            kwargs: dict = {
                "model": self.model,
                "messages": messages,
                "max_tokens": self.max_tokens,
                "temperature": self.temperature,
                "timeout": self.timeout,
            }
            if self.api_key:
                kwargs["api_key"] = self.api_key
            response = litellm.completion(**kwargs)

        return (response.choices[0].message.content or "").strip()

    def _call_claude_code(self, turns: list[Turn]) -> str:
        """Call claude CLI in single-prompt mode.

        System turns become the system prompt; the rest of the conversation is
        flattened into a transcript piped via stdin.
        """
        claude_model = self.model.split("/", 1)[1] if "/" in self.model else self.model

        system_prompt = "\n\n".join(t.content for t in turns if t.role is Role.SYSTEM)
        transcript = "\n\n".join(
            f"{t.role.value.upper()}: {t.content}" for t in turns if t.role is not Role.SYSTEM
        )

        result = subprocess.run(
            ["claude", "-p", "--no-session-persistence", "--model", claude_model,
             "--disable-slash-commands", "--tools", "", "--setting-sources", "",
             "--system-prompt", system_prompt],
            input=transcript,
            capture_output=True,
            text=True,
            timeout=self.timeout,
        )
        if result.returncode != 0:
            raise RuntimeError(result.stderr.strip() or f"claude exited with code {result.returncode}")
        return result.stdout.strip()
