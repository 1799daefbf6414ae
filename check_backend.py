"""
Verify backend: imports, graph compile, DB, default templates and optional Gemini round trip.
Run: python check_backend.py
"""
import asyncio
import sys


def check(name: str, fn):
    try:
        fn()
        print(f"  OK  {name}")
        return True
    except Exception as e:
        print(f"  FAIL {name}: {e}")
        return False


def main_sync():
    print("1. Imports (config, models, db, services, integrations, agents, workflow, routes)...")
    ok = True
    ok &= check("config", lambda: __import__("postflow.config"))
    ok &= check("models (schemas + db_models)", lambda: __import__("postflow.models.schemas") or __import__("postflow.models.db_models"))
    ok &= check("db (get_db, init_db)", lambda: __import__("postflow.db"))
    ok &= check("services (templates, gemini, posts, media, video)", lambda: __import__("postflow.services"))
    ok &= check("integrations (instagram)", lambda: __import__("postflow.integrations.instagram_provider"))
    ok &= check("agents", lambda: __import__("postflow.agents"))
    ok &= check("workflow (state + graph)", lambda: __import__("postflow.workflow.state") or __import__("postflow.workflow.graph"))
    ok &= check("main app", lambda: __import__("postflow.main"))
    if not ok:
        return 1

    print("\n2. LangGraph compile...")
    try:
        from postflow.workflow.graph import build_generation_graph
        build_generation_graph()
        print("  OK  Graph compiled")
    except Exception as e:
        print(f"  FAIL Graph: {e}")
        return 1

    async def run_async_checks():
        from sqlalchemy import text
        from postflow.db import create_tables, init_db
        from postflow.services.prompt_templates_service import PromptTemplatesService

        print("\n3. DB connection...")
        try:
            factory = init_db()
        except ValueError as e:
            print(f"  SKIP {e}")
            return None
        async with factory() as session:
            await session.execute(text("SELECT 1"))
        await create_tables()
        print("  OK  DB connected")

        print("\n4. Default templates for organization 'check-backend'...")
        async with factory() as session:
            svc = PromptTemplatesService(session)
            await svc.ensure_default_templates_exist("check-backend")
            prompt = await svc.get_research_prompt("check-backend", "one_short", "personal", {"request": "test"})
            await session.rollback()
        assert "{{" not in prompt
        print("  OK  Research prompt resolved")

        print("\n5. Gemini extraction (requires GEMINI_API_KEY)...")
        from postflow.config import settings
        from postflow.models.schemas import HookOutput
        from postflow.services.gemini_service import GeminiService

        return await GeminiService.from_settings(settings).extract("Write a one-line hook about coffee.", HookOutput)

    try:
        result = asyncio.run(run_async_checks())
        if result is not None:
            print(f"  OK  Gemini responded: {result.hook[:80]}")
    except Exception as e:
        err = str(e)
        if "Gemini" in err or "API key" in err:
            print("  SKIP Gemini (no GEMINI_API_KEY or invalid). Other backend OK.")
        else:
            print(f"  FAIL: {e}")
            return 1

    print("\nBackend check done.")
    return 0


if __name__ == "__main__":
    sys.exit(main_sync())
