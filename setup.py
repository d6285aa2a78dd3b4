from setuptools import setup, find_packages

with open("requirements.txt") as f:
    required = f.read().splitlines()

setup(
    name="chatcrawl",
    version="0.1.0",
    packages=find_packages("src"),
    package_dir={"": "src"},
    python_requires=">=3.10",
    install_requires=required,
    extras_require={"test": ["pytest>=7.0"]},
    entry_points={"console_scripts": ["chatcrawl = chatcrawl.cli:main"]},
    description="Rank the Telegram chats, channels and users a conversation links to",
)
