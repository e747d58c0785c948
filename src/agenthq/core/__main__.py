"""CLI 入口模块 -- python -m agenthq.core <command>

支持的命令：
  init-db               创建数据库表结构
  briefing <task_id>    打印派发该任务时会发送的 briefing
"""

import asyncio
import sys

from .config import get_db_path


def main() -> None:
    """CLI 主入口"""
    if len(sys.argv) < 2:
        _print_usage()
        sys.exit(1)

    command = sys.argv[1]

    if command == "init-db":
        asyncio.run(init_database())
    elif command == "briefing":
        if len(sys.argv) < 3 or not sys.argv[2].isdigit():
            print("用法: python -m agenthq.core briefing <task_id>")
            sys.exit(1)
        found = asyncio.run(print_briefing(int(sys.argv[2])))
        if not found:
            sys.exit(1)
    else:
        print(f"未知命令: {command}")
        print("可用命令: init-db, briefing")
        sys.exit(1)


def _print_usage() -> None:
    print("用法: python -m agenthq.core <command>")
    print("命令:")
    print("  init-db               创建数据库表结构")
    print("  briefing <task_id>    打印派发该任务时会发送的 briefing")


async def init_database() -> None:
    """创建数据库表结构"""
    from .store import create_store_group

    db_path = get_db_path()
    print(f"数据库路径: {db_path}")

    store_group = await create_store_group(db_path)
    await store_group.conn.close()
    print("初始化完成")


async def print_briefing(task_id: int) -> bool:
    """打印任务 briefing，任务不存在时返回 False"""
    from .briefing import compose_briefing
    from .store import create_store_group

    store_group = await create_store_group(get_db_path())
    try:
        task = await store_group.task_store.get_task(task_id)
        if task is None:
            print(f"任务不存在: {task_id}")
            return False

        client, project = await store_group.get_task_context(task)
        print(compose_briefing(task, client, project))
        return True
    finally:
        await store_group.conn.close()


if __name__ == "__main__":
    main()
