from fastapi.security import HTTPBearer

# Define HTTP Bearer authentication schemes for different user roles
bearer_admin = HTTPBearer(scheme_name="Admin HTTPBearer")
bearer_user = HTTPBearer(scheme_name="User HTTPBearer")
