[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "certradar"
version = "0.1.2"
description = "SSL/TLS, DNS and CAA security analysis building blocks with text and JSON reporting"
requires-python = ">=3.13"
keywords = [
    "ssl",
    "tls",
    "certificates",
    "dns",
    "caa",
    "hsts",
    "security",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.13",
    "Topic :: Security",
    "Topic :: Internet :: Name Service (DNS)",
    "Topic :: System :: Networking :: Monitoring",
]
dependencies = [
    "dnspython",
    "cryptography",
    "tabulate",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["certradar"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py313"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.13"
warn_unused_ignores = true
ignore_missing_imports = true
