"""
╔══════════════════════════════════════════════════════════════════════════════╗
║  FIELDFORCE - Models Package                                                 ║
║                                                                              ║
║  Request body models for every resource                                      ║
║  from models import UserLogin, DoctorCreate, OrderCreate, etc.               ║
╚══════════════════════════════════════════════════════════════════════════════╝
"""

# Auth & users
from .auth import (
    UserLogin,
    TokenRefresh,
    PasswordChange,
    UserCreate,
    UserUpdate,
    is_valid_email_format,
)

# Doctors
from .doctor import (
    DoctorCreate,
    DoctorUpdate,
    AssignMR,
)

# Products
from .product import (
    PRODUCT_CATEGORIES,
    ProductCreate,
    ProductUpdate,
)

# Visit reports
from .visit_report import (
    VISIT_TYPES,
    VISIT_OUTCOMES,
    VisitReportCreate,
    VisitDetails,
    VisitDetailsUpdate,
    VisitReportUpdate,
    VisitRejection,
)

# Orders
from .order import (
    ORDER_TYPES,
    PRIORITIES,
    OrderCreate,
    OrderUpdate,
    OrderStatusUpdate,
    OrderCancel,
)

# Targets & performance
from .targets import (
    TARGET_STATUSES,
    PERFORMANCE_STATUSES,
    MRTargetCreate,
    MRTargetUpdate,
    MRPerformanceCreate,
    MRPerformanceUpdate,
    compute_averages,
)

# Product activity
from .product_activity import ProductActivityCreate

# MR requests
from .mr_request import (
    MRRequestCreate,
    MRRequestReject,
)

# Email
from .email import (
    SendEmailRequest,
    ApprovalEmailRequest,
    RejectionEmailRequest,
    ApplicationReceivedEmailRequest,
)

__all__ = [
    # Auth
    "UserLogin",
    "TokenRefresh",
    "PasswordChange",
    "UserCreate",
    "UserUpdate",
    "is_valid_email_format",
    # Doctors
    "DoctorCreate",
    "DoctorUpdate",
    "AssignMR",
    # Products
    "PRODUCT_CATEGORIES",
    "ProductCreate",
    "ProductUpdate",
    # Visit reports
    "VISIT_TYPES",
    "VISIT_OUTCOMES",
    "VisitReportCreate",
    "VisitDetails",
    "VisitDetailsUpdate",
    "VisitReportUpdate",
    "VisitRejection",
    # Orders
    "ORDER_TYPES",
    "PRIORITIES",
    "OrderCreate",
    "OrderUpdate",
    "OrderStatusUpdate",
    "OrderCancel",
    # Targets & performance
    "TARGET_STATUSES",
    "PERFORMANCE_STATUSES",
    "MRTargetCreate",
    "MRTargetUpdate",
    "MRPerformanceCreate",
    "MRPerformanceUpdate",
    "compute_averages",
    # Product activity
    "ProductActivityCreate",
    # MR requests
    "MRRequestCreate",
    "MRRequestReject",
    # Email
    "SendEmailRequest",
    "ApprovalEmailRequest",
    "RejectionEmailRequest",
    "ApplicationReceivedEmailRequest",
]
