"""
Скрипт для инициализации базы данных.

Создаёт все таблицы напрямую через SQLAlchemy (metadata.create_all).

Запуск:
    python init_db.py           # создать таблицы
    python init_db.py --reset   # удалить и создать заново
"""

import asyncio
import sys

from todo_tracker.core.config import settings
from todo_tracker.core.database import drop_db, engine, init_db


async def main(reset: bool = False):
    """Создать все таблицы (при reset - сначала удалить)."""
    print(f"База данных: {engine.url.render_as_string(hide_password=True)}")
    if reset:
        print("Удаление таблиц...")
        await drop_db()
    print("Создание таблиц...")
    await init_db()
    await engine.dispose()
    print(f"✓ Таблицы для {settings.APP_NAME} созданы успешно!")


if __name__ == "__main__":
    asyncio.run(main(reset="--reset" in sys.argv[1:]))
