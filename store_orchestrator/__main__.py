from store_orchestrator.main import run

run()
