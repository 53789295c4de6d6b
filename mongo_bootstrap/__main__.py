from mongo_bootstrap.main import run

run()
