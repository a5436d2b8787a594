from service.models.api import ApiRequest, ApiResponse, json_response, raw_response
from service.models.user import User

__all__ = ["ApiRequest", "ApiResponse", "json_response", "raw_response", "User"]
