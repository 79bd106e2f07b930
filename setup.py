import setuptools
from pathlib import Path

ROOT = Path(__file__).parent


def read_requirements(filename: str = "requirements.txt") -> list[str]:
    req_path = ROOT / filename
    if not req_path.exists():
        return []
    reqs: list[str] = []
    for line in req_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        reqs.append(line)
    return reqs


def read_long_description(filename: str = "README.md") -> str:
    path = ROOT / filename
    return path.read_text(encoding="utf-8") if path.exists() else ""


setuptools.setup(
    name="keygrad",
    version="0.1.0a0",  # PEP 440 compliant
    description=(
        "keygrad is a small reverse-mode automatic differentiation engine built "
        "on an append-only arena of NumPy tensors, with pluggable operations, "
        "losses and optimizers."
    ),
    long_description=read_long_description(),
    long_description_content_type="text/markdown",
    license="Apache-2.0",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
    ],
    package_dir={"": "src"},
    packages=setuptools.find_namespace_packages(where="src", include=["keygrad*"]),
    python_requires=">=3.10",
    install_requires=read_requirements(),
    extras_require={"test": ["pytest"]},
    include_package_data=True,
    zip_safe=False,
)
