"""Agent 注册表 -- 已知 Agent 的只读档案"""

from pydantic import BaseModel

from .enums import AgentId


class AgentProfile(BaseModel):
    """Agent 档案"""

    id: AgentId
    name: str
    role: str = ""
    model: str = ""


AGENTS: dict[AgentId, AgentProfile] = {
    AgentId.CLAW: AgentProfile(
        id=AgentId.CLAW, name="Claw", role="System Admin", model="deepseek-reasoner"
    ),
    AgentId.BERNARD: AgentProfile(
        id=AgentId.BERNARD, name="Bernard", role="Developer", model="deepseek-reasoner"
    ),
    AgentId.VALE: AgentProfile(
        id=AgentId.VALE, name="Vale", role="Marketer", model="deepseek-chat"
    ),
    AgentId.GUMBO: AgentProfile(
        id=AgentId.GUMBO, name="Gumbo", role="Assistant", model="deepseek-chat"
    ),
    AgentId.UNASSIGNED: AgentProfile(id=AgentId.UNASSIGNED, name="Unassigned"),
}
