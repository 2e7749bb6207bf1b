import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.models import User
from app.db.mongo import get_mongo_db
from app.db.session import get_db
from app.mails.services import InternalMailService
from app.messaging.schemas import DEFAULT_THREAD_SIZE, ConversationCreate, MessageCreate
from app.messaging.services import MessagingService
from app.users.services import attach_users, get_user_or_404
from app.utils.errors import BadRequestError

logger = logging.getLogger(__name__)

conversations_router = APIRouter(prefix="/api/conversations", tags=["conversations"])
messages_router = APIRouter(prefix="/api/messages", tags=["messages"])

PARTICIPANTS = {"sender_id": "sender", "receiver_id": "receiver"}


async def _thread_response(me: User, other_user_id: int, page: int, limit: int, db: AsyncSession,
                           mongo: AsyncIOMotorDatabase) -> dict:
    result = await MessagingService(mongo).thread(me.id, other_user_id, page, limit)
    await attach_users(db, result["items"], PARTICIPANTS)
    return {
        "status": "success",
        "results": len(result["items"]),
        "total": result["total"],
        "page": result["page"],
        "total_pages": result["total_pages"],
        "data": {"messages": result["items"]},
    }


# ============================================================
# /api/conversations
# ============================================================
@conversations_router.get("")
async def list_conversations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    conversations = await MessagingService(mongo).list_conversations(current_user.id)
    await attach_users(db, conversations, {"other_user_id": "other_user"})
    for conv in conversations:
        conv["unread_count"] = conv.pop("my_unread_count")
    return {"status": "success", "results": len(conversations), "data": {"conversations": conversations}}


@conversations_router.post("")
async def create_or_get_conversation(
    payload: ConversationCreate,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    target_id = payload.target_id()
    if target_id is None:
        raise BadRequestError(
            "ID du participant requis (participant_id, user_id, other_user_id, receiver_id ou recipient_id)."
        )
    if target_id == current_user.id:
        raise BadRequestError("Impossible de créer une conversation avec vous-même.")
    participant = await get_user_or_404(db, target_id, "Participant non trouvé.")

    conversation, created = await MessagingService(mongo).get_or_create_conversation(
        current_user.id, participant.id, payload.related_property_id, payload.related_event_id
    )
    conversation["other_user"] = participant.to_summary()
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return {"status": "success", "data": {"conversation": conversation}}


@conversations_router.get("/count/unread")
async def count_unread_messages(
    current_user: User = Depends(get_current_user),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    count = await MessagingService(mongo).count_unread(current_user.id)
    return {"status": "success", "data": {"count": count}}


@conversations_router.get("/{other_user_id}/messages")
async def conversation_messages(
    other_user_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_THREAD_SIZE, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    return await _thread_response(current_user, other_user_id, page, limit, db, mongo)


@conversations_router.patch("/{other_user_id}/read")
async def mark_conversation_read(
    other_user_id: int,
    current_user: User = Depends(get_current_user),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    marked = await MessagingService(mongo).mark_thread_read(current_user.id, other_user_id)
    return {"status": "success", "data": {"marked_count": marked}}


@conversations_router.delete("/{other_user_id}")
async def delete_conversation(
    other_user_id: int,
    current_user: User = Depends(get_current_user),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    deleted = await MessagingService(mongo).delete_thread(current_user.id, other_user_id)
    return {"status": "success", "data": {"deleted_count": deleted}}


# ============================================================
# /api/messages
# ============================================================
@messages_router.get("")
async def message_conversations(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    conversations = await MessagingService(mongo).conversation_map(current_user.id)
    await attach_users(db, conversations, {"other_user_id": "user"})
    return {"status": "success", "results": len(conversations), "data": {"conversations": conversations}}


@messages_router.post("", status_code=status.HTTP_201_CREATED)
async def send_message(
    payload: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    try:
        target_id = payload.target_id()
        if not payload.content or not payload.content.strip() or target_id is None:
            raise BadRequestError("Le contenu et soit conversation_id soit receiver_id sont requis.")
        receiver = await get_user_or_404(db, target_id, "Destinataire non trouvé.")
        message = await MessagingService(mongo).send_message(
            current_user.id, receiver.id, payload.content, payload.subject
        )
        await attach_users(db, [message], PARTICIPANTS)
        return {"status": "success", "data": {"message": message}}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Erreur envoi message : {e}")
        raise HTTPException(status_code=500, detail="Erreur interne lors de l'envoi du message")


@messages_router.get("/unread/total")
async def total_unread(
    current_user: User = Depends(get_current_user),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    """Emails internes non lus + messages de conversation non lus."""
    internal_mails = await InternalMailService(mongo).count_unread(current_user.id)
    messages = await MessagingService(mongo).count_unread(current_user.id)
    logger.debug(f"📊 Non lus user_id={current_user.id} : emails={internal_mails}, messages={messages}")
    return {
        "status": "success",
        "data": {"internal_mails": internal_mails, "messages": messages, "total": internal_mails + messages},
    }


@messages_router.get("/{other_user_id}")
async def message_thread(
    other_user_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_THREAD_SIZE, ge=1, le=200),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    return await _thread_response(current_user, other_user_id, page, limit, db, mongo)


@messages_router.patch("/{message_id}/read")
async def mark_message_read(
    message_id: str,
    current_user: User = Depends(get_current_user),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    message = await MessagingService(mongo).mark_message_read(message_id, current_user.id)
    return {"status": "success", "data": {"message": message}}


@messages_router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    message_id: str,
    current_user: User = Depends(get_current_user),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    await MessagingService(mongo).delete_message(message_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
