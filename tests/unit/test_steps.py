"""
Unit Tests for Onboarding Models
단계 순서 및 상태 스냅샷 직렬화 테스트

Run: pytest tests/unit/test_steps.py -v
"""

import pytest
from datetime import datetime

from app.models.onboarding import (
    DocumentStatus,
    OnboardingStatus,
    OnboardingStep,
    TransitionRequest,
)


class TestStepOrdering:
    """OnboardingStep 순서 테스트"""

    def test_ordered_sequence(self):
        """정의 순서 확인"""
        assert [s.value for s in OnboardingStep.ordered()] == [
            "email_verification",
            "upload_document",
            "choose_plan",
            "payment",
            "completed",
        ]

    def test_positions_are_strictly_increasing(self):
        positions = [s.position for s in OnboardingStep.ordered()]
        assert positions == sorted(positions)
        assert len(set(positions)) == len(positions)

    @pytest.mark.parametrize("step,expected", [
        (OnboardingStep.EMAIL_VERIFICATION, OnboardingStep.UPLOAD_DOCUMENT),
        (OnboardingStep.UPLOAD_DOCUMENT, OnboardingStep.CHOOSE_PLAN),
        (OnboardingStep.CHOOSE_PLAN, OnboardingStep.PAYMENT),
        (OnboardingStep.PAYMENT, OnboardingStep.COMPLETED),
    ])
    def test_next_is_immediate_successor(self, step, expected):
        assert step.next() == expected

    def test_completed_has_no_successor(self):
        """completed는 종료 상태"""
        assert OnboardingStep.COMPLETED.next() is None
        assert OnboardingStep.COMPLETED.is_terminal
        assert not OnboardingStep.PAYMENT.is_terminal

    def test_comparison_uses_position(self):
        assert OnboardingStep.EMAIL_VERIFICATION < OnboardingStep.PAYMENT
        assert OnboardingStep.COMPLETED >= OnboardingStep.CHOOSE_PLAN
        assert OnboardingStep.CHOOSE_PLAN >= OnboardingStep.CHOOSE_PLAN
        # 문자열 순서와 다름 (payment < upload_document 알파벳순)
        assert OnboardingStep.PAYMENT > OnboardingStep.UPLOAD_DOCUMENT

    def test_at_position(self):
        assert OnboardingStep.at(2) == OnboardingStep.CHOOSE_PLAN

    def test_unknown_step_value_rejected(self):
        with pytest.raises(ValueError):
            OnboardingStep("tutorial")


class TestStatusWireFormat:
    """OnboardingStatus camelCase 직렬화 테스트"""

    def test_to_wire_uses_camel_case(self):
        status = OnboardingStatus(
            current_step=OnboardingStep.UPLOAD_DOCUMENT,
            completed=False,
            email_verified=True,
            document_status=DocumentStatus(
                document_id="doc_1",
                file_name="profile.pdf",
                status="pending",
                uploaded_at=datetime(2025, 3, 1, 9, 30),
            ),
        )

        wire = status.to_wire()

        assert wire["currentStep"] == "upload_document"
        assert wire["emailVerified"] is True
        assert wire["completed"] is False
        assert wire["documentStatus"]["fileName"] == "profile.pdf"
        assert wire["documentStatus"]["uploadedAt"].startswith("2025-03-01T09:30")
        assert wire["hasSubscription"] is False
        assert wire["hasTutorial"] is False

    def test_parse_from_wire(self):
        """클라이언트가 응답 JSON을 다시 읽을 수 있어야 함"""
        status = OnboardingStatus.model_validate({
            "currentStep": "choose_plan",
            "completed": False,
            "emailVerified": True,
            "documentStatus": None,
        })

        assert status.current_step == OnboardingStep.CHOOSE_PLAN
        assert status.has_document is False

    def test_transition_request_accepts_camel_case(self):
        request = TransitionRequest.model_validate({
            "currentStep": "payment",
            "nextStep": "completed",
        })
        assert request.current_step == OnboardingStep.PAYMENT
        assert request.next_step == OnboardingStep.COMPLETED
