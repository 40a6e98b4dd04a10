"""
Account Models
계정 역할 및 공개 프로필 모델
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Role(str, Enum):
    """사용자 역할"""
    STANDARD = "standard"   # 일반 계정 (입찰 검색/지원)
    ADMIN = "admin"         # 관리자 화면 접근


class Account(BaseModel):
    """계정 모델 (비밀번호 제외)"""
    id: str
    username: str
    email: Optional[str] = None
    company_name: str = ""
    industry: Optional[str] = None
    role: Role = Role.STANDARD
    profile_completeness: int = Field(default=0, ge=0, le=100)
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    last_login: Optional[datetime] = None

    def to_public(self) -> dict:
        """API 응답용 dict (camelCase)"""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "companyName": self.company_name,
            "industry": self.industry,
            "role": self.role.value,
            "profileCompleteness": self.profile_completeness,
            "isActive": self.is_active,
            "createdAt": self.created_at.isoformat(),
            "lastLogin": self.last_login.isoformat() if self.last_login else None,
        }


class AccountCreate(BaseModel):
    """회원가입 요청"""
    username: str = Field(..., min_length=3, max_length=64)
    password: str = Field(..., min_length=6, max_length=128)
    email: Optional[str] = Field(default=None, max_length=254)
    company_name: str = Field(default="", alias="companyName", max_length=200)
    industry: Optional[str] = Field(default=None, max_length=100)

    model_config = {"populate_by_name": True}


class AccountLogin(BaseModel):
    """로그인 요청"""
    username: str
    password: str
