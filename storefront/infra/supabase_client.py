from supabase import create_client, Client
from storefront.config import SUPABASE_URL, SUPABASE_SERVICE_KEY


def create_service_supabase(url: str = SUPABASE_URL, key: str = SUPABASE_SERVICE_KEY) -> Client:
    """
    Client Supabase service-role (bypass RLS) pour le catalogue, les commandes et la fidélité.
    Construit une seule fois par processus dans le lifespan, puis injecté dans les repositories.
    """
    if not url:
        raise RuntimeError("SUPABASE_URL manquant pour create_service_supabase()")
    if not key:
        raise RuntimeError("SUPABASE_SERVICE_KEY manquant pour create_service_supabase()")
    return create_client(url, key)
