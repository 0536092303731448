"""Message type constants exchanged with the embedding host.

Naming:
- ``F2B``: input (front end) to host (back end)
- ``B2F``: host to input
- ``REQ`` / ``RES``: request / response
"""

from __future__ import annotations

# Chat
ASK_QUESTION_F2B_REQ = "hicode_ask_question_f2b_req"
NEW_CONVERSATION = "hicode_new_conversation"
OPEN_HISTORY = "hicode_open_history"

# Resource (code selection) updates
SELECTION_CHANGE = "hicode_selection_change"
CLEAR_SELECTION = "hicode_clear_selection"

# Input content pushed by the host
SET_CONTENT_B2F = "hicode_set_content_b2f"
FOCUS_INPUT_B2F = "hicode_focus_input_b2f"

# System
ERROR_B2F = "hicode_error_b2f"

__all__ = [
    "ASK_QUESTION_F2B_REQ",
    "CLEAR_SELECTION",
    "ERROR_B2F",
    "FOCUS_INPUT_B2F",
    "NEW_CONVERSATION",
    "OPEN_HISTORY",
    "SELECTION_CHANGE",
    "SET_CONTENT_B2F",
]
