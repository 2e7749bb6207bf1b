from typing import Optional

from pydantic import BaseModel, Field

MAX_MESSAGE_LENGTH = 5000
DEFAULT_THREAD_SIZE = 50


class ConversationCreate(BaseModel):
    # Plusieurs noms acceptés pour l'autre participant
    participant_id: Optional[int] = None
    user_id: Optional[int] = None
    other_user_id: Optional[int] = None
    receiver_id: Optional[int] = None
    recipient_id: Optional[int] = None
    related_property_id: Optional[str] = None
    related_event_id: Optional[str] = None

    def target_id(self) -> Optional[int]:
        for value in (self.participant_id, self.user_id, self.other_user_id, self.receiver_id, self.recipient_id):
            if value is not None:
                return value
        return None


class MessageCreate(BaseModel):
    # conversation_id désigne l'identifiant de l'autre utilisateur
    conversation_id: Optional[int] = None
    receiver_id: Optional[int] = None
    subject: Optional[str] = Field(None, max_length=200)
    content: Optional[str] = None

    def target_id(self) -> Optional[int]:
        return self.conversation_id if self.conversation_id is not None else self.receiver_id
