import asyncio
from habit_rabbit.db import init_db
from habit_rabbit.scheduler.jobs import weekly_consolidation_job

async def main():
    await init_db()
    consolidated = await weekly_consolidation_job()
    print(f"Consolidated {consolidated} profile(s)")

if __name__ == "__main__":
    asyncio.run(main())
