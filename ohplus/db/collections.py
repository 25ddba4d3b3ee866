USERS = "iboard_users"
COMPANIES = "companies"
PRODUCTS = "products"
BOOKINGS = "booking"
JOB_ORDERS = "job_orders"
SERVICE_ASSIGNMENTS = "service_assignments"
PROPOSALS = "proposals"
PROPOSAL_TEMPLATES = "proposal_templates"
QUOTATIONS = "quotations"
COST_ESTIMATES = "costEstimates"
CLIENTS = "client_db"
IT_INVENTORY = "itInventory"
NOTIFICATIONS = "notifications"
EMAILS = "emails"
SUBSCRIPTIONS = "subscriptions"
INVITATION_CODES = "invitation_codes"
ROLES = "roles"
PERMISSIONS = "permissions"
USER_ROLES = "user_roles"
PLANNER = "planner"
SCREEN_SCHEDULES = "screen_schedule"
REPORTS = "reports"
FINANCE_REQUESTS = "request"
ENCASHMENT_SETTINGS = "encashment_settings"
ENCASHMENT_TRANSACTIONS = "encashment_transactions"
