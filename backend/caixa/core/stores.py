from typing import Dict, Optional

from caixa.core.config import settings


# Registro padrão usado pelo seed; a tabela `stores` é a fonte de verdade
DEFAULT_STORES: Dict[str, str] = {
    "capao": "Top Capão Bonito",
    "guapiara": "Top Guapiara",
    "ribeirao": "Top Ribeirão Branco",
    "admin": "Caixa Administrativo",
}


def is_admin_store(store_id: Optional[str]) -> bool:
    return store_id is not None and store_id == settings.admin_store_id


def requires_operator_name(store_id: Optional[str], is_admin_user: bool = False) -> bool:
    return is_admin_user or (store_id in settings.operator_name_stores)


def get_store_name(store_id: Optional[str], names: Optional[Dict[str, str]] = None) -> str:
    if not store_id:
        return "Desconhecida"
    return (names or DEFAULT_STORES).get(store_id, store_id)
