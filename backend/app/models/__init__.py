from app.models.lab_day import LabDay, LabDayRole, LabStation  # noqa: F401
from app.models.notification import Notification, NotificationCategory  # noqa: F401
from app.models.open_shift import OpenShift  # noqa: F401
from app.models.shift_signup import ShiftSignup, SignupStatus  # noqa: F401
from app.models.shift_trade import (  # noqa: F401
    ShiftSwapInterest,
    ShiftTradeRequest,
    ShiftTradeStatus,
    SwapInterestStatus,
)
from app.models.substitute_request import (  # noqa: F401
    SubstituteReason,
    SubstituteRequest,
    SubstituteRequestStatus,
)
from app.models.user import User, UserRole  # noqa: F401
