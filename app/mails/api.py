import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.dependencies import get_current_user
from app.auth.models import User
from app.db.mongo import get_mongo_db
from app.db.session import get_db
from app.mails.schemas import DEFAULT_PAGE_SIZE, MailBox, parse_priority
from app.mails.services import InternalMailService
from app.users.services import attach_users, get_user_or_404
from app.utils.errors import BadRequestError
from app.utils.uploads import MAX_ATTACHMENTS, discard_uploads, save_uploads

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/internal-mails", tags=["internal-mails"])

PARTICIPANTS = {"sender_id": "sender", "receiver_id": "receiver"}


async def _save_attachments(files: Optional[List[UploadFile]], user: User) -> List[dict]:
    return await save_uploads(files, "mails", f"mail_{user.id}", kind="attachment", max_count=MAX_ATTACHMENTS)


async def _one(db: AsyncSession, mail: dict) -> dict:
    await attach_users(db, [mail], PARTICIPANTS)
    return {"status": "success", "data": {"message": mail}}


async def _list_box(box: MailBox, page: int, limit: int, user: User, db: AsyncSession,
                    mongo: AsyncIOMotorDatabase) -> dict:
    result = await InternalMailService(mongo).list_box(box, user.id, page, limit)
    await attach_users(db, result["items"], PARTICIPANTS)
    return {
        "status": "success",
        "results": len(result["items"]),
        "total": result["total"],
        "page": result["page"],
        "total_pages": result["total_pages"],
        "data": {"messages": result["items"]},
    }


# ==========================================================
# 📌 Routes statiques (avant /{mail_id})
# ==========================================================
@router.get("/count/unread")
async def unread_count(
    current_user: User = Depends(get_current_user),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    count = await InternalMailService(mongo).count_unread(current_user.id)
    return {"status": "success", "data": {"count": count}}


def _box_route(box: MailBox):
    async def endpoint(
        page: int = Query(1, ge=1),
        limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
        mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
    ):
        return await _list_box(box, page, limit, current_user, db, mongo)

    endpoint.__name__ = f"list_{box.value}"
    return endpoint


for _box in MailBox:
    router.add_api_route(f"/{_box.value}", _box_route(_box), methods=["GET"])


# ==========================================================
# 📤 Envoi et brouillons
# ==========================================================
@router.post("", status_code=status.HTTP_201_CREATED)
async def send_mail(
    receiver_id: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    subject: Optional[str] = Form(None),
    priority: Optional[str] = Form(None),
    attachments: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    try:
        if not receiver_id or not content or not content.strip():
            raise BadRequestError("Le destinataire et le contenu sont requis.")
        receiver = await get_user_or_404(db, receiver_id, "Destinataire non trouvé.")
        parsed_priority = parse_priority(priority)
        files = await _save_attachments(attachments, current_user)
        try:
            mail = await InternalMailService(mongo).send(
                current_user.id, receiver.id, content, subject, parsed_priority, files
            )
        except Exception:
            discard_uploads(files)
            raise
        return await _one(db, mail)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Erreur envoi email interne : {e}")
        raise HTTPException(status_code=500, detail="Erreur interne lors de l'envoi de l'email")


@router.post("/drafts", status_code=status.HTTP_201_CREATED)
async def save_draft(
    receiver_id: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    subject: Optional[str] = Form(None),
    priority: Optional[str] = Form(None),
    attachments: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    try:
        receiver = await get_user_or_404(db, receiver_id, "Destinataire non trouvé.") if receiver_id else None
        parsed_priority = parse_priority(priority)
        has_files = any(f is not None and f.filename for f in (attachments or []))
        if not content and not has_files:
            raise BadRequestError("Le brouillon doit contenir au moins du texte ou une pièce jointe.")
        files = await _save_attachments(attachments, current_user)
        try:
            draft = await InternalMailService(mongo).save_draft(
                current_user.id, receiver.id if receiver else None, content, subject, parsed_priority, files
            )
        except Exception:
            discard_uploads(files)
            raise
        return await _one(db, draft)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Erreur enregistrement brouillon : {e}")
        raise HTTPException(status_code=500, detail="Erreur interne lors de l'enregistrement du brouillon")


@router.put("/drafts/{draft_id}")
async def update_draft(
    draft_id: str,
    receiver_id: Optional[str] = Form(None),
    content: Optional[str] = Form(None),
    subject: Optional[str] = Form(None),
    priority: Optional[str] = Form(None),
    send: bool = Form(False),
    attachments: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    try:
        service = InternalMailService(mongo)
        await service.get_draft(draft_id, current_user.id)

        changes = {"content": content, "priority": parse_priority(priority)}
        if subject is not None:
            changes["subject"] = subject
        if receiver_id is not None:
            # Chaîne vide : le destinataire est retiré
            receiver = await get_user_or_404(db, receiver_id, "Destinataire non trouvé.") if receiver_id else None
            changes["receiver_id"] = receiver.id if receiver else None

        files = await _save_attachments(attachments, current_user)
        try:
            draft = await service.update_draft(draft_id, current_user.id, changes, files, send=send)
        except Exception:
            discard_uploads(files)
            raise
        return await _one(db, draft)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Erreur mise à jour brouillon {draft_id} : {e}")
        raise HTTPException(status_code=500, detail="Erreur interne lors de la mise à jour du brouillon")


@router.delete("/drafts/{draft_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_draft(
    draft_id: str,
    current_user: User = Depends(get_current_user),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    await InternalMailService(mongo).delete_draft(draft_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/trash/empty")
async def empty_trash(
    current_user: User = Depends(get_current_user),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    deleted = await InternalMailService(mongo).empty_trash(current_user.id)
    return {"status": "success", "data": {"deleted_count": deleted}}


# ==========================================================
# 🔗 Actions sur un email
# ==========================================================
@router.patch("/{mail_id}/read")
async def mark_read(
    mail_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    return await _one(db, await InternalMailService(mongo).mark_read(mail_id, current_user.id, True))


@router.patch("/{mail_id}/unread")
async def mark_unread(
    mail_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    return await _one(db, await InternalMailService(mongo).mark_read(mail_id, current_user.id, False))


@router.patch("/{mail_id}/star")
async def star(
    mail_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    return await _one(db, await InternalMailService(mongo).set_starred(mail_id, current_user.id, True))


@router.patch("/{mail_id}/unstar")
async def unstar(
    mail_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    return await _one(db, await InternalMailService(mongo).set_starred(mail_id, current_user.id, False))


@router.patch("/{mail_id}/trash")
async def move_to_trash(
    mail_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    return await _one(db, await InternalMailService(mongo).set_trashed(mail_id, current_user.id, True))


@router.patch("/{mail_id}/restore")
async def restore(
    mail_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    return await _one(db, await InternalMailService(mongo).set_trashed(mail_id, current_user.id, False))


@router.delete("/{mail_id}/permanent", status_code=status.HTTP_204_NO_CONTENT)
async def delete_permanently(
    mail_id: str,
    current_user: User = Depends(get_current_user),
    mongo: AsyncIOMotorDatabase = Depends(get_mongo_db),
):
    await InternalMailService(mongo).delete_permanently(mail_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
