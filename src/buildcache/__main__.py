from buildcache.cli import app

app()
