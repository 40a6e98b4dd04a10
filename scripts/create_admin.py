#!/usr/bin/env python3
"""
Admin Account Script
관리자 계정 생성/갱신

공개 가입 경로로는 관리자를 만들 수 없으므로 이 스크립트만 사용한다.
"""

import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.table import Table

sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.auth import hash_password
from app.models.account import Role
from app.services.storage import get_account_storage, get_storage_type

app = typer.Typer()
console = Console()


@app.command()
def create(
    username: str = "admin",
    password: Optional[str] = None,
    email: Optional[str] = None,
    company_name: str = "System Administrator",
):
    """
    관리자 계정 생성

    이미 존재하면 비밀번호와 역할만 갱신한다.

    Args:
        username: 관리자 사용자명
        password: 비밀번호 (없으면 입력받음)
        email: 이메일
        company_name: 회사명
    """
    console.print("\n🔐 [bold cyan]Esddar - Admin Creator[/bold cyan]\n")

    storage = get_account_storage()
    if get_storage_type() == "memory":
        console.print("[red]❌ 데이터베이스에 연결할 수 없습니다. DATABASE_URL을 확인하세요.[/red]")
        raise typer.Exit(code=1)

    if not password:
        password = Prompt.ask("비밀번호", password=True)

    existing = storage.get_account_by_username(username)

    if existing:
        console.print(f"[yellow]⚠️  계정이 이미 존재합니다: {username}[/yellow]")
        if not Confirm.ask("비밀번호와 역할을 갱신하시겠습니까?"):
            console.print("[yellow]취소되었습니다.[/yellow]")
            return

        storage.update_account(existing.id, {
            "password_hash": hash_password(password),
            "role": Role.ADMIN,
        })
        console.print(f"[green]✅ 관리자 권한 갱신 완료: {username}[/green]")
        return

    record = storage.create_account(
        username=username,
        password_hash=hash_password(password),
        email=email,
        company_name=company_name,
        role=Role.ADMIN,
        profile_completeness=100,
    )
    console.print(f"[green]✅ 관리자 생성 완료: {record.username} ({record.id})[/green]")


@app.command("list")
def list_admins(limit: int = 100):
    """관리자 계정 목록"""
    storage = get_account_storage()

    table = Table(title="Admin Accounts")
    table.add_column("ID", style="cyan")
    table.add_column("Username", style="green")
    table.add_column("Email")
    table.add_column("Onboarding")

    for record in storage.list_accounts(limit=limit):
        if record.role != Role.ADMIN:
            continue
        table.add_row(record.id, record.username, record.email or "-", record.onboarding_step.value)

    console.print(table)


if __name__ == "__main__":
    app()
