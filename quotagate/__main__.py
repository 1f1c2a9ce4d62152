from quotagate.main import run

run()
