from invoke import task


@task
def lint(c):
    c.run("ruff check .")


@task
def format_check(c):
    c.run("ruff format --check .")


@task(help={"k": "Only run tests matching this expression"})
def test(c, k=""):
    c.run(f'pytest -k "{k}"' if k else "pytest")


@task
def ci(c):
    lint(c)
    format_check(c)
    test(c)
