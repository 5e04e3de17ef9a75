from setuptools import setup, find_packages

setup(
    name="comprehensive-report",
    version="1.0.0",
    description="Comprehensive HTML report export for the divisional dashboard",
    author="Your Organization",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    package_data={
        "comprehensive_report.report": ["templates/*.j2", "static/*.js", "static/*.css"],
    },
    include_package_data=True,
    python_requires=">=3.8",
    install_requires=[
        "pandas>=2.0.0",
        "openpyxl>=3.1.0",
        "numpy>=1.24.0",
        "PyYAML>=6.0",
        "python-dotenv>=1.0.0",
        "xlsxwriter>=3.1.0",
        "colorama>=0.4.6",
        "playwright>=1.40.0",
        "Jinja2>=3.1.0",
        "MarkupSafe>=2.1.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "comprehensive-report=comprehensive_report.main:run",
        ],
    },
)
