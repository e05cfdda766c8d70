from app.models.user import User
from app.models.company import Company
from app.models.campaign import Campaign, CampaignAddress
from app.models.access_permission import AccessPermission
from app.models.api_key import ApiKey
from app.models.privacy_rule import PrivacyRule
from app.models.pending_order import PendingOrder
from app.models.audit_log import AuditLog
