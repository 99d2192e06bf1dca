"""Shared Lark SDK domain resolver."""

import lark_oapi as lark


def resolve_lark_domain(domain: str | None) -> str:
    """Map the config domain onto the SDK base URL (Feishu unless "lark")."""
    if (domain or "").strip().lower() == "lark":
        return lark.LARK_DOMAIN  # https://open.larksuite.com
    return lark.FEISHU_DOMAIN  # https://open.feishu.cn


def domain_label(domain: str | None) -> str:
    return "Lark" if (domain or "").strip().lower() == "lark" else "Feishu"
