USER = "User"
EMPLOYEE = "Employee"
COMPANY_ADMINISTRATOR = "CompanyAdministrator"
CAMPAIGN_MANAGER = "CampaignManager"
ADMIN = "Administrator"

ALL_ROLES = (USER, EMPLOYEE, COMPANY_ADMINISTRATOR, CAMPAIGN_MANAGER, ADMIN)
COMPANY_ROLES = (USER, EMPLOYEE, COMPANY_ADMINISTRATOR, CAMPAIGN_MANAGER)
COMPANY_MANAGER_ROLES = (COMPANY_ADMINISTRATOR, CAMPAIGN_MANAGER)
ORDER_DUPLICATION_ROLES = (ADMIN, CAMPAIGN_MANAGER, COMPANY_ADMINISTRATOR)


def normalize_role(value: str) -> str:
    cleaned = (value or "").strip()
    for role in ALL_ROLES:
        if role.lower() == cleaned.lower():
            return role
    allowed = ", ".join(ALL_ROLES)
    raise ValueError(f"Invalid role. Allowed: {allowed}")
