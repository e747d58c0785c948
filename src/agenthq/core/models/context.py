"""Client / Project 上下文模型

只读：核心逻辑仅在组装 briefing 时读取，从不修改。
"""

from pydantic import BaseModel, Field


class Client(BaseModel):
    """客户上下文"""

    id: int
    name: str
    platform: str = Field(default="", description="wordpress / shopify / other")
    shopify_store: str = ""
    wp_login_url: str = ""
    notes: str = ""


class Project(BaseModel):
    """项目上下文"""

    id: int
    client_id: int | None = None
    name: str
    project_type: str = ""
    description: str = ""
