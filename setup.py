from setuptools import setup, find_packages

setup(name="mathsolver",
    version="0.1.0",
    description="Infix and LaTeX math expression interpreter with step-by-step traces",
    license='MIT',
    python_requires=">=3.9",
    install_requires=[
        "ply",
        "numpy"
    ],
    packages=find_packages(include=["mathsolver", "mathsolver.*"]),
    entry_points={
        "console_scripts": [
            "mathsolver=mathsolver.execute:main",
        ],
    },
    extras_require={
        "dev": ["pytest>=7"],
    },
)
