from setuptools import setup, find_packages

with open("Readme.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="machine-report",
    version="1.0.0",
    author="Machine Report Team",
    description='Rapport machine instantané multi-plateforme (tableau ou JSON).',
    long_description=long_description,
    long_description_content_type='text/markdown',
    include_package_data=True,
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires='>=3.8',
    install_requires=[
        "psutil>=5.9.0",
        "configparser>=5.3.0",
        "rich>=13.0.0",
        "WMI>=1.5.1; platform_system=='Windows'",
        "pywin32>=306; platform_system=='Windows'",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
        ],
        "dev": [
            "black>=23.0.0",
            "flake8>=6.0.0",
        ],
    },

    entry_points='''
        [console_scripts]
        machine-report=machine_report.main:main
    '''
)
