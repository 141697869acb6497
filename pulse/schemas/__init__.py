from pulse.schemas.coupon import CouponCreate, CouponResponse, CouponUpdate
from pulse.schemas.dashboard import (
    DashboardMetricsResponse,
    EngagementCounts,
    SentimentDistribution,
    TopCoupon,
)
from pulse.schemas.email_opt_in import (
    EmailOptInResponse,
    EmailSubmitRequest,
    EmailSubmitResponse,
    EmailVerifyResponse,
)
from pulse.schemas.issued_coupon import (
    AdjustRedemptionsRequest,
    CheckExistingCouponResponse,
    CouponRedeemedResponse,
    CouponStatusResponse,
    EngagementRequest,
    IssueCouponRequest,
    IssueCouponResponse,
    IssuedCouponListItem,
    IssuedCouponMutationResponse,
    IssuedCouponPageResponse,
    IssuedCouponResponse,
    IssuedCouponUpdate,
    MutationResponse,
    RedeemCouponRequest,
    SurveyCompletionResponse,
    ValidateCouponRequest,
    ValidateCouponResponse,
)
from pulse.schemas.question import (
    QuestionCreate,
    QuestionMutationResponse,
    QuestionResponse,
    QuestionResultsResponse,
    QuestionUpdate,
    ReorderRequest,
)
from pulse.schemas.staff import (
    ApiKeyCreate,
    ApiKeyCreateResponse,
    ApiKeyResponse,
    StaffCreate,
    StaffResponse,
)
from pulse.schemas.survey import (
    QuestionAnswer,
    SubmissionResponse,
    SurveyQuestionsResponse,
    SurveySubmission,
)
from pulse.schemas.tenant import TenantResponse

__all__ = [
    "AdjustRedemptionsRequest",
    "ApiKeyCreate",
    "ApiKeyCreateResponse",
    "ApiKeyResponse",
    "CheckExistingCouponResponse",
    "CouponCreate",
    "CouponRedeemedResponse",
    "CouponResponse",
    "CouponStatusResponse",
    "CouponUpdate",
    "DashboardMetricsResponse",
    "EmailOptInResponse",
    "EngagementCounts",
    "EmailSubmitRequest",
    "EmailSubmitResponse",
    "EmailVerifyResponse",
    "EngagementRequest",
    "IssueCouponRequest",
    "IssueCouponResponse",
    "IssuedCouponListItem",
    "IssuedCouponMutationResponse",
    "IssuedCouponPageResponse",
    "IssuedCouponResponse",
    "IssuedCouponUpdate",
    "MutationResponse",
    "QuestionAnswer",
    "QuestionCreate",
    "QuestionMutationResponse",
    "QuestionResponse",
    "QuestionResultsResponse",
    "QuestionUpdate",
    "RedeemCouponRequest",
    "ReorderRequest",
    "SentimentDistribution",
    "StaffCreate",
    "StaffResponse",
    "SubmissionResponse",
    "SurveyCompletionResponse",
    "SurveyQuestionsResponse",
    "SurveySubmission",
    "TenantResponse",
    "TopCoupon",
    "ValidateCouponRequest",
    "ValidateCouponResponse",
]
