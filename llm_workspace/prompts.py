"""Prompt text shared by the context assembler."""

MEMORY_SECTION_HEADER = "Previous relevant context:"

HISTORY_SECTION_HEADER = "Conversation history:"

MEMORY_SYSTEM_PREFACE = "Here is relevant context that might help with the user's query:\n"

ROLE_LABELS = {
    "user": "User",
    "assistant": "Assistant",
    "system": "System",
}
