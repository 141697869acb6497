from pulse.repositories.api_key_repository import (
    ApiKeyRepository,
    generate_api_key,
    hash_api_key,
)
from pulse.repositories.coupon_repository import CouponRepository
from pulse.repositories.dashboard_repository import CouponIssueCount, DashboardRepository
from pulse.repositories.email_opt_in_repository import EmailOptInRepository
from pulse.repositories.issued_coupon_repository import IssuedCouponRepository
from pulse.repositories.question_repository import QuestionRepository
from pulse.repositories.staff_repository import StaffRepository
from pulse.repositories.survey_response_repository import SurveyResponseRepository

__all__ = [
    "ApiKeyRepository",
    "CouponIssueCount",
    "CouponRepository",
    "DashboardRepository",
    "EmailOptInRepository",
    "IssuedCouponRepository",
    "QuestionRepository",
    "StaffRepository",
    "SurveyResponseRepository",
    "generate_api_key",
    "hash_api_key",
]
