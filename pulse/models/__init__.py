from pulse.models.api_key import ApiKey
from pulse.models.coupon import Coupon
from pulse.models.email_opt_in import EmailOptIn
from pulse.models.issued_coupon import IssuedCoupon, IssuedCouponStatus
from pulse.models.staff import StaffMember, StaffRole
from pulse.models.survey_question import QuestionType, SurveyQuestion
from pulse.models.survey_response import SurveyResponse
from pulse.models.tenant import Tenant

__all__ = [
    "ApiKey",
    "Coupon",
    "EmailOptIn",
    "IssuedCoupon",
    "IssuedCouponStatus",
    "QuestionType",
    "StaffMember",
    "StaffRole",
    "SurveyQuestion",
    "SurveyResponse",
    "Tenant",
]
