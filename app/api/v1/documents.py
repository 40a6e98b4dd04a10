"""
Company Documents API
회사 문서 업로드 접수 (내용 분석은 외부 협력자)
"""

from fastapi import APIRouter, HTTPException, Depends, File, Request, UploadFile
import logging

from app.core.auth import get_current_account, require_role
from app.core.security import log_audit, AuditAction, sanitize_filename
from app.models.account import Account, Role
from app.models.onboarding import DocumentStatusUpdate
from app.services.storage import DocumentRecord, get_account_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/company-documents")

ALLOWED_CONTENT_TYPES = {"application/pdf"}


def _document_to_dict(document: DocumentRecord) -> dict:
    return {
        "documentId": document.document_id,
        "fileName": document.file_name,
        "status": document.status,
        "uploadedAt": document.uploaded_at.isoformat(),
        "processedAt": document.processed_at.isoformat() if document.processed_at else None,
    }


@router.post("", status_code=201)
async def upload_document(
    request: Request,
    file: UploadFile = File(...),
    account: Account = Depends(get_current_account),
):
    """
    회사 문서 업로드

    문서는 pending 상태로 기록되며, 다음 온보딩 상태 조회부터
    documentStatus에 나타난다.
    """
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Only PDF documents are accepted")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded document is empty")

    document = get_account_storage().add_document(
        account.id, sanitize_filename(file.filename), status="pending"
    )

    log_audit(
        AuditAction.DOCUMENT_UPLOADED,
        request,
        user_id=account.id,
        details={"document_id": document.document_id, "size": len(content)},
    )
    return _document_to_dict(document)


@router.get("")
async def list_documents(account: Account = Depends(get_current_account)):
    """내 문서 목록 (최신순)"""
    return [_document_to_dict(d) for d in get_account_storage().list_documents(account.id)]


@router.patch("/{document_id}")
async def update_document_status(
    document_id: str,
    data: DocumentStatusUpdate,
    request: Request,
    admin: Account = Depends(require_role(Role.ADMIN)),
):
    """문서 처리 상태 갱신 (처리 협력자 콜백, 관리자 전용)"""
    document = get_account_storage().update_document_status(document_id, data.status)
    if not document:
        raise HTTPException(status_code=404, detail="Document not found")

    log_audit(
        AuditAction.DOCUMENT_STATUS_UPDATED,
        request,
        user_id=admin.id,
        details={"document_id": document_id, "status": data.status},
    )
    return _document_to_dict(document)
