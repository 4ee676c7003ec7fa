from .normalize import normalize_linkedin_url, normalize_phone, clean_company_name

__all__ = ["normalize_linkedin_url", "normalize_phone", "clean_company_name"]
