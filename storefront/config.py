# storefront.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

"""
Configuration centrale du service.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env)
- Normalise et expose les secrets/URLs (Supabase, Stripe), CORS/hosts
- Fournit les options du checkout (devise, locale, pays de livraison, codes promo)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _as_list(v: str) -> list:
    return [x.strip() for x in (v or "").split(",") if x.strip()]

def _as_bool(v: str, default: bool = False) -> bool:
    if not v:
        return default
    return v.strip().lower() in ("1", "true", "yes", "on")

# Supabase: catalogue, commandes et fidélité passent par le client service-role
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or "")

if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# Stripe: clé secrète et secret de signature des webhooks
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")

# URL publique du site (pages success/cancel du checkout)
SITE_URL = _clean_env(os.getenv("SITE_URL") or "http://localhost:8000").rstrip("/")

# Options du checkout Stripe
CHECKOUT_CURRENCY = _clean_env(os.getenv("CHECKOUT_CURRENCY") or "aud").lower()
CHECKOUT_LOCALE = _clean_env(os.getenv("CHECKOUT_LOCALE") or "en")
ALLOWED_SHIPPING_COUNTRIES = [c.upper() for c in _as_list(os.getenv("ALLOWED_SHIPPING_COUNTRIES", "AU"))]
ALLOW_PROMOTION_CODES = _as_bool(os.getenv("ALLOW_PROMOTION_CODES"), default=True)

# CORS / hosts
CORS_ORIGINS = _as_list(os.getenv("CORS_ORIGINS", "*"))
ALLOWED_HOSTS = _as_list(os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1"))
