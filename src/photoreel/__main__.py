from photoreel.main import run

run()
