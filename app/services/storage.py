"""
계정 저장 서비스 - 온보딩 상태의 단일 진실 공급원 (Status Store)

계정, 회사 문서, 이메일 확인 토큰을 SQLAlchemy로 저장한다.
DB 연결 실패 시 인메모리 저장소로 폴백.
"""

import os
import uuid
import logging
import threading
from datetime import datetime
from typing import List, Optional, Dict, Any
from dataclasses import dataclass, field, replace
from contextlib import contextmanager

from sqlalchemy import create_engine, func, Column, String, Boolean, DateTime, Integer, ForeignKey, Index
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker

from app.core.config import settings
from app.models.account import Account, Role
from app.models.onboarding import OnboardingStep

logger = logging.getLogger(__name__)

Base = declarative_base()


# ============================================
# SQLAlchemy Models
# ============================================

class AccountModel(Base):
    """계정 테이블"""
    __tablename__ = 'accounts'

    id = Column(String(32), primary_key=True)
    username = Column(String(64), nullable=False, unique=True, index=True)
    email = Column(String(254), nullable=True)
    password_hash = Column(String(128), nullable=False)
    company_name = Column(String(200), nullable=False, default="")
    industry = Column(String(100), nullable=True)
    role = Column(String(16), nullable=False, default=Role.STANDARD.value)
    profile_completeness = Column(Integer, default=0)

    # Onboarding
    email_verified = Column(Boolean, default=False, nullable=False)
    onboarding_step = Column(String(32), nullable=False, default=OnboardingStep.EMAIL_VERIFICATION.value)
    onboarding_completed = Column(Boolean, default=False, nullable=False)
    subscription_plan = Column(String(32), nullable=True)
    has_seen_tutorial = Column(Boolean, default=False, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)


class CompanyDocumentModel(Base):
    """회사 문서 테이블 (내용 분석은 외부 협력자)"""
    __tablename__ = 'company_documents'

    document_id = Column(String(64), primary_key=True)
    user_id = Column(String(32), ForeignKey('accounts.id', ondelete='CASCADE'), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    status = Column(String(32), nullable=False, default="pending")
    uploaded_at = Column(DateTime, default=datetime.utcnow, index=True)
    processed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index('idx_document_user_uploaded', 'user_id', 'uploaded_at'),
    )


class ConfirmationTokenModel(Base):
    """이메일 확인 토큰 테이블"""
    __tablename__ = 'email_confirmation_tokens'

    token = Column(String(128), primary_key=True)
    user_id = Column(String(32), ForeignKey('accounts.id', ondelete='CASCADE'), nullable=False, index=True)
    email = Column(String(254), nullable=False)
    expires_at = Column(DateTime, nullable=False)


# ============================================
# Dataclasses
# ============================================

@dataclass
class AccountRecord:
    """저장된 계정 (비밀번호 해시 + 온보딩 사실 포함)"""
    id: str
    username: str
    password_hash: str
    email: Optional[str] = None
    company_name: str = ""
    industry: Optional[str] = None
    role: Role = Role.STANDARD
    profile_completeness: int = 0
    email_verified: bool = False
    onboarding_step: OnboardingStep = OnboardingStep.EMAIL_VERIFICATION
    onboarding_completed: bool = False
    subscription_plan: Optional[str] = None
    has_seen_tutorial: bool = False
    is_active: bool = True
    created_at: datetime = field(default_factory=datetime.utcnow)
    last_login: Optional[datetime] = None

    def to_account(self) -> Account:
        return Account(
            id=self.id,
            username=self.username,
            email=self.email,
            company_name=self.company_name,
            industry=self.industry,
            role=self.role,
            profile_completeness=self.profile_completeness,
            is_active=self.is_active,
            created_at=self.created_at,
            last_login=self.last_login,
        )


@dataclass
class DocumentRecord:
    """저장된 회사 문서"""
    document_id: str
    user_id: str
    file_name: str
    status: str = "pending"
    uploaded_at: datetime = field(default_factory=datetime.utcnow)
    processed_at: Optional[datetime] = None


@dataclass
class ConfirmationToken:
    """이메일 확인 토큰"""
    token: str
    user_id: str
    email: str
    expires_at: datetime


# 수정 가능한 계정 필드
UPDATABLE_FIELDS = {
    "email", "password_hash", "company_name", "industry", "role",
    "profile_completeness", "subscription_plan", "has_seen_tutorial",
    "is_active", "last_login",
}


class StaleStepError(Exception):
    """저장된 단계가 예상과 다름 (동시 전환)"""

    def __init__(self, expected: OnboardingStep, actual: Optional[OnboardingStep]):
        super().__init__(f"expected {expected.value}, found {actual.value if actual else None}")
        self.expected = expected
        self.actual = actual


def _new_account_id() -> str:
    return uuid.uuid4().hex[:16]


def _new_document_id() -> str:
    return f"doc_{uuid.uuid4().hex[:12]}"


def _to_account_record(row: AccountModel) -> AccountRecord:
    return AccountRecord(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
        email=row.email,
        company_name=row.company_name or "",
        industry=row.industry,
        role=Role(row.role),
        profile_completeness=row.profile_completeness or 0,
        email_verified=bool(row.email_verified),
        onboarding_step=OnboardingStep(row.onboarding_step),
        onboarding_completed=bool(row.onboarding_completed),
        subscription_plan=row.subscription_plan,
        has_seen_tutorial=bool(row.has_seen_tutorial),
        is_active=bool(row.is_active),
        created_at=row.created_at,
        last_login=row.last_login,
    )


def _to_document_record(row: CompanyDocumentModel) -> DocumentRecord:
    return DocumentRecord(
        document_id=row.document_id,
        user_id=row.user_id,
        file_name=row.file_name,
        status=row.status,
        uploaded_at=row.uploaded_at,
        processed_at=row.processed_at,
    )


# ============================================
# Account Storage Service
# ============================================

class AccountStorageService:
    """
    계정 저장 서비스 (SQLAlchemy)

    온보딩 단계는 advance_step의 compare-and-set으로만 전진한다.
    """

    def __init__(self, database_url: Optional[str] = None):
        self.database_url = database_url or settings.DATABASE_URL
        self.engine = self._create_engine()
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._ensure_tables()

    def _create_engine(self):
        """DB 엔진 생성"""
        if self.database_url.startswith("sqlite"):
            path = self.database_url.replace("sqlite:///", "", 1)
            if path and path != self.database_url and not path.startswith(":memory:"):
                directory = os.path.dirname(path)
                if directory:
                    os.makedirs(directory, exist_ok=True)

            logger.info(f"Connecting to SQLite: {self.database_url}")
            return create_engine(
                self.database_url,
                connect_args={"check_same_thread": False},
                echo=False
            )

        logger.info("Connecting to account database")
        return create_engine(
            self.database_url,
            pool_size=10,
            max_overflow=20,
            pool_pre_ping=True,
            echo=False
        )

    def _ensure_tables(self):
        """테이블 생성"""
        try:
            Base.metadata.create_all(self.engine)
            logger.info("Account storage tables ensured")
        except Exception as e:
            logger.error(f"Failed to create tables: {e}")
            raise

    @contextmanager
    def _get_db(self):
        """DB 세션 컨텍스트 매니저"""
        db = self.SessionLocal()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ========================================
    # Accounts
    # ========================================

    def create_account(
        self,
        username: str,
        password_hash: str,
        email: Optional[str] = None,
        company_name: str = "",
        industry: Optional[str] = None,
        role: Role = Role.STANDARD,
        profile_completeness: int = 0,
    ) -> AccountRecord:
        """
        계정 생성 (온보딩은 email_verification에서 시작)

        Raises:
            ValueError: 사용자명 중복 (unique 제약 위반)
        """
        account_id = _new_account_id()
        now = datetime.utcnow()

        try:
            with self._get_db() as db:
                row = AccountModel(
                    id=account_id,
                    username=username,
                    email=email,
                    password_hash=password_hash,
                    company_name=company_name,
                    industry=industry,
                    role=role.value,
                    profile_completeness=profile_completeness,
                    email_verified=False,
                    onboarding_step=OnboardingStep.EMAIL_VERIFICATION.value,
                    onboarding_completed=False,
                    has_seen_tutorial=False,
                    is_active=True,
                    created_at=now,
                )
                db.add(row)
                db.flush()
                record = _to_account_record(row)
        except IntegrityError:
            raise ValueError(f"Username already exists: {username}")

        logger.info(f"Created account: {username} ({account_id})")
        return record

    def get_account(self, account_id: str) -> Optional[AccountRecord]:
        """ID로 계정 조회"""
        with self._get_db() as db:
            row = db.query(AccountModel).filter(AccountModel.id == account_id).first()
            return _to_account_record(row) if row else None

    def get_account_by_username(self, username: str) -> Optional[AccountRecord]:
        """사용자명으로 계정 조회"""
        with self._get_db() as db:
            row = db.query(AccountModel).filter(AccountModel.username == username).first()
            return _to_account_record(row) if row else None

    def list_accounts(self, limit: int = 100, offset: int = 0) -> List[AccountRecord]:
        """계정 목록 (최신 가입순)"""
        with self._get_db() as db:
            rows = db.query(AccountModel).order_by(
                AccountModel.created_at.desc()
            ).offset(offset).limit(limit).all()
            return [_to_account_record(r) for r in rows]

    def count_by_step(self) -> Dict[OnboardingStep, int]:
        """온보딩 단계별 계정 수 (전체 집계)"""
        with self._get_db() as db:
            rows = db.query(
                AccountModel.onboarding_step, func.count(AccountModel.id)
            ).group_by(AccountModel.onboarding_step).all()
            return {OnboardingStep(step): count for step, count in rows}

    def update_account(self, account_id: str, updates: Dict[str, Any]) -> Optional[AccountRecord]:
        """계정 필드 수정 (온보딩 단계는 제외)"""
        with self._get_db() as db:
            row = db.query(AccountModel).filter(AccountModel.id == account_id).first()
            if not row:
                return None

            for key, value in updates.items():
                if key not in UPDATABLE_FIELDS:
                    logger.warning(f"Ignoring non-updatable account field: {key}")
                    continue
                if key == "role":
                    value = value.value if isinstance(value, Role) else Role(value).value
                setattr(row, key, value)

            db.flush()
            return _to_account_record(row)

    def mark_email_verified(self, account_id: str) -> Optional[AccountRecord]:
        """
        이메일 인증 처리

        email_verification 단계에 있으면 upload_document로 함께 전진.
        이미 뒤 단계라면 단계는 그대로 둔다 (역행 없음).
        """
        with self._get_db() as db:
            row = db.query(AccountModel).filter(AccountModel.id == account_id).first()
            if not row:
                return None

            row.email_verified = True
            if row.onboarding_step == OnboardingStep.EMAIL_VERIFICATION.value:
                row.onboarding_step = OnboardingStep.UPLOAD_DOCUMENT.value

            db.flush()
            return _to_account_record(row)

    def advance_step(
        self,
        account_id: str,
        expected: OnboardingStep,
        next_step: OnboardingStep,
    ) -> AccountRecord:
        """
        온보딩 단계 전진 (compare-and-set)

        Raises:
            StaleStepError: 저장된 단계가 expected와 다름
        """
        with self._get_db() as db:
            updated = db.query(AccountModel).filter(
                AccountModel.id == account_id,
                AccountModel.onboarding_step == expected.value,
            ).update(
                {
                    AccountModel.onboarding_step: next_step.value,
                    AccountModel.onboarding_completed: next_step.is_terminal,
                },
                synchronize_session=False,
            )

            row = db.query(AccountModel).filter(AccountModel.id == account_id).first()
            if not updated:
                actual = OnboardingStep(row.onboarding_step) if row else None
                raise StaleStepError(expected, actual)

            db.refresh(row)
            return _to_account_record(row)

    # ========================================
    # Company Documents
    # ========================================

    def add_document(self, user_id: str, file_name: str, status: str = "pending") -> DocumentRecord:
        """문서 제출 기록"""
        document_id = _new_document_id()
        with self._get_db() as db:
            row = CompanyDocumentModel(
                document_id=document_id,
                user_id=user_id,
                file_name=file_name,
                status=status,
                uploaded_at=datetime.utcnow(),
            )
            db.add(row)
            db.flush()
            record = _to_document_record(row)

        logger.info(f"Recorded document {document_id} for account {user_id}")
        return record

    def list_documents(self, user_id: str) -> List[DocumentRecord]:
        """계정의 문서 목록 (최신순)"""
        with self._get_db() as db:
            rows = db.query(CompanyDocumentModel).filter(
                CompanyDocumentModel.user_id == user_id
            ).order_by(CompanyDocumentModel.uploaded_at.desc()).all()
            return [_to_document_record(r) for r in rows]

    def latest_document(self, user_id: str) -> Optional[DocumentRecord]:
        documents = self.list_documents(user_id)
        return documents[0] if documents else None

    def update_document_status(self, document_id: str, status: str) -> Optional[DocumentRecord]:
        """문서 처리 상태 갱신"""
        with self._get_db() as db:
            row = db.query(CompanyDocumentModel).filter(
                CompanyDocumentModel.document_id == document_id
            ).first()
            if not row:
                return None

            row.status = status
            if status == "completed":
                row.processed_at = datetime.utcnow()
            db.flush()
            return _to_document_record(row)

    # ========================================
    # Confirmation Tokens
    # ========================================

    def save_confirmation_token(self, token: ConfirmationToken):
        with self._get_db() as db:
            db.add(ConfirmationTokenModel(
                token=token.token,
                user_id=token.user_id,
                email=token.email,
                expires_at=token.expires_at,
            ))

    def pop_confirmation_token(self, token: str) -> Optional[ConfirmationToken]:
        """토큰 조회 후 삭제 (1회용)"""
        with self._get_db() as db:
            row = db.query(ConfirmationTokenModel).filter(
                ConfirmationTokenModel.token == token
            ).first()
            if not row:
                return None

            result = ConfirmationToken(
                token=row.token,
                user_id=row.user_id,
                email=row.email,
                expires_at=row.expires_at,
            )
            db.delete(row)
            return result


# ============================================
# In-Memory Fallback
# ============================================

class InMemoryAccountStorage:
    """인메모리 계정 저장소 (DB 없을 때 / 테스트)"""

    def __init__(self):
        self._accounts: Dict[str, AccountRecord] = {}
        self._documents: Dict[str, DocumentRecord] = {}
        self._tokens: Dict[str, ConfirmationToken] = {}
        self._lock = threading.Lock()

    def create_account(
        self,
        username: str,
        password_hash: str,
        email: Optional[str] = None,
        company_name: str = "",
        industry: Optional[str] = None,
        role: Role = Role.STANDARD,
        profile_completeness: int = 0,
    ) -> AccountRecord:
        with self._lock:
            if any(a.username == username for a in self._accounts.values()):
                raise ValueError(f"Username already exists: {username}")

            record = AccountRecord(
                id=_new_account_id(),
                username=username,
                password_hash=password_hash,
                email=email,
                company_name=company_name,
                industry=industry,
                role=role,
                profile_completeness=profile_completeness,
            )
            self._accounts[record.id] = record
            return replace(record)

    def get_account(self, account_id: str) -> Optional[AccountRecord]:
        record = self._accounts.get(account_id)
        return replace(record) if record else None

    def get_account_by_username(self, username: str) -> Optional[AccountRecord]:
        for record in self._accounts.values():
            if record.username == username:
                return replace(record)
        return None

    def list_accounts(self, limit: int = 100, offset: int = 0) -> List[AccountRecord]:
        records = sorted(self._accounts.values(), key=lambda r: r.created_at, reverse=True)
        return [replace(r) for r in records[offset:offset + limit]]

    def count_by_step(self) -> Dict[OnboardingStep, int]:
        counts: Dict[OnboardingStep, int] = {}
        for record in self._accounts.values():
            counts[record.onboarding_step] = counts.get(record.onboarding_step, 0) + 1
        return counts

    def update_account(self, account_id: str, updates: Dict[str, Any]) -> Optional[AccountRecord]:
        with self._lock:
            record = self._accounts.get(account_id)
            if not record:
                return None
            for key, value in updates.items():
                if key not in UPDATABLE_FIELDS:
                    logger.warning(f"Ignoring non-updatable account field: {key}")
                    continue
                if key == "role":
                    value = Role(value)
                setattr(record, key, value)
            return replace(record)

    def mark_email_verified(self, account_id: str) -> Optional[AccountRecord]:
        with self._lock:
            record = self._accounts.get(account_id)
            if not record:
                return None
            record.email_verified = True
            if record.onboarding_step == OnboardingStep.EMAIL_VERIFICATION:
                record.onboarding_step = OnboardingStep.UPLOAD_DOCUMENT
            return replace(record)

    def advance_step(
        self,
        account_id: str,
        expected: OnboardingStep,
        next_step: OnboardingStep,
    ) -> AccountRecord:
        with self._lock:
            record = self._accounts.get(account_id)
            if not record or record.onboarding_step != expected:
                raise StaleStepError(expected, record.onboarding_step if record else None)
            record.onboarding_step = next_step
            record.onboarding_completed = next_step.is_terminal
            return replace(record)

    def add_document(self, user_id: str, file_name: str, status: str = "pending") -> DocumentRecord:
        with self._lock:
            record = DocumentRecord(
                document_id=_new_document_id(),
                user_id=user_id,
                file_name=file_name,
                status=status,
            )
            self._documents[record.document_id] = record
            return replace(record)

    def list_documents(self, user_id: str) -> List[DocumentRecord]:
        documents = [d for d in self._documents.values() if d.user_id == user_id]
        documents.sort(key=lambda d: d.uploaded_at, reverse=True)
        return [replace(d) for d in documents]

    def latest_document(self, user_id: str) -> Optional[DocumentRecord]:
        documents = self.list_documents(user_id)
        return documents[0] if documents else None

    def update_document_status(self, document_id: str, status: str) -> Optional[DocumentRecord]:
        with self._lock:
            record = self._documents.get(document_id)
            if not record:
                return None
            record.status = status
            if status == "completed":
                record.processed_at = datetime.utcnow()
            return replace(record)

    def save_confirmation_token(self, token: ConfirmationToken):
        with self._lock:
            self._tokens[token.token] = token

    def pop_confirmation_token(self, token: str) -> Optional[ConfirmationToken]:
        with self._lock:
            return self._tokens.pop(token, None)


# Singleton instance
_account_storage = None
_storage_type: str = "none"


def get_account_storage():
    """
    계정 저장 서비스 싱글톤

    DB 연결 실패 시 자동으로 인메모리 폴백 사용
    """
    global _account_storage, _storage_type

    if _account_storage is None:
        try:
            _account_storage = AccountStorageService()
            _storage_type = "database"
            logger.info("Account storage: database connected")
        except Exception as e:
            logger.warning(f"Account database unavailable: {e}")
            logger.warning("Falling back to in-memory account storage")
            _account_storage = InMemoryAccountStorage()
            _storage_type = "memory"

    return _account_storage


def set_account_storage(storage) -> None:
    """저장소 교체 (테스트/스크립트용)"""
    global _account_storage, _storage_type
    _account_storage = storage
    _storage_type = "memory" if isinstance(storage, InMemoryAccountStorage) else "database"


def get_storage_type() -> str:
    """현재 스토리지 타입 반환"""
    return _storage_type
