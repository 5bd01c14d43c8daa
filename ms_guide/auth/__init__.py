from .decorators import api_key_required, extract_api_key

__all__ = ["api_key_required", "extract_api_key"]
