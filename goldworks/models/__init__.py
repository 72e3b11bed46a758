# Models package
from goldworks.models.user import User, UserRole, Capability, ROLE_CAPABILITIES
from goldworks.models.order import Order, OrderDetails, Stone, OrderStatus
from goldworks.models.department import (
    DepartmentTracking, DepartmentName, DepartmentStatus, DEPARTMENT_ORDER, DEPARTMENT_DISPLAY_NAMES
)
from goldworks.models.submission import FinalSubmission, QUALITY_GRADES
from goldworks.models.activity import OrderActivity, ActivityAction, Notification, NotificationType
