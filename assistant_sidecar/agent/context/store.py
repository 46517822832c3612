import logging
import time
from collections import OrderedDict
from typing import Iterator, List, Optional, Sequence

from assistant_sidecar.agent.structs import ROLES, ConversationState, Turn
from assistant_sidecar.exceptions.context import ContextValidationError

logger = logging.getLogger("ConversationStore")


class ConversationStore:
    """
    In-memory owner of every conversation's state.

    All mutation goes through this object. Methods are synchronous and never
    await, so on a single event loop each call is atomic with respect to
    other coroutines; ``begin_summarization`` relies on that for its
    check-and-set.

    ``max_conversations`` enables least-recently-updated eviction. Left as
    None the store is unbounded and lives as long as the process.
    """

    def __init__(self, max_conversations: Optional[int] = None, clock=time.time):
        if max_conversations is not None and max_conversations < 1:
            raise ContextValidationError(
                "max_conversations must be at least 1",
                validation_type="max_conversations",
                invalid_value=max_conversations,
            )
        self._conversations: "OrderedDict[str, ConversationState]" = OrderedDict()
        self._max_conversations = max_conversations
        self._clock = clock

    def __len__(self) -> int:
        return len(self._conversations)

    def __contains__(self, conversation_id: str) -> bool:
        return conversation_id in self._conversations

    def conversation_ids(self) -> Iterator[str]:
        return iter(list(self._conversations))

    # --- Lifecycle ---

    def get_or_create(self, conversation_id: str) -> ConversationState:
        """Returns the existing state or registers an empty one."""
        state = self._conversations.get(conversation_id)
        if state is not None:
            return state

        state = ConversationState(
            conversation_id=conversation_id, updated_at=self._clock()
        )
        self._conversations[conversation_id] = state
        self._evict_if_needed(keep=conversation_id)
        return state

    def _touch(self, state: ConversationState) -> None:
        state.updated_at = self._clock()
        self._conversations.move_to_end(state.conversation_id)

    def _evict_if_needed(self, keep: str) -> None:
        if self._max_conversations is None:
            return
        while len(self._conversations) > self._max_conversations:
            # Oldest first; a conversation with a compaction in flight is kept
            victim = next(
                (
                    cid
                    for cid, state in self._conversations.items()
                    if not state.summarizing and cid != keep
                ),
                None,
            )
            if victim is None:
                return
            del self._conversations[victim]
            logger.info("Evicted least recently updated conversation %s", victim)

    # --- Turns ---

    def append_turn(self, conversation_id: str, role: str, content: str) -> Turn:
        """Appends a new turn stamped with the current time."""
        if role not in ROLES:
            raise ContextValidationError(
                f"Unknown turn role: {role}",
                validation_type="role",
                invalid_value=role,
            )
        state = self.get_or_create(conversation_id)
        timestamp = self._clock()
        if state.turns and timestamp < state.turns[-1].timestamp:
            timestamp = state.turns[-1].timestamp
        turn = Turn(role=role, content=content, timestamp=timestamp)
        state.turns.append(turn)
        self._touch(state)
        return turn

    # --- Compaction guard ---

    def begin_summarization(self, conversation_id: str) -> bool:
        """Check-and-set of the single-flight flag. False means skip."""
        state = self.get_or_create(conversation_id)
        if state.summarizing:
            return False
        state.summarizing = True
        return True

    def complete_summarization(
        self,
        conversation_id: str,
        new_summary: str,
        retained_turns: Sequence[Turn],
    ) -> None:
        """
        Installs a new summary and truncates ``turns`` to the retained window.

        Turns appended after the compaction snapshot (anything following the
        last retained turn) are kept after the retained ones.
        """
        state = self.get_or_create(conversation_id)
        retained: List[Turn] = list(retained_turns)
        newer: List[Turn] = []
        if retained:
            anchor = retained[-1]
            for index in range(len(state.turns) - 1, -1, -1):
                if state.turns[index] is anchor:
                    newer = state.turns[index + 1 :]
                    break

        state.summary = new_summary
        state.turns = retained + newer
        state.summarizing = False
        state.last_summary_at = self._clock()
        self._touch(state)

    def fail_summarization(self, conversation_id: str) -> None:
        """Releases the flag and leaves summary and turns untouched."""
        state = self._conversations.get(conversation_id)
        if state is not None:
            state.summarizing = False
