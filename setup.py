#!/usr/bin/env -S python3 -B -u
"""
Setup script for mastodon_cleanup package - Mastodon Docker Cleanup
"""

from setuptools import setup, find_packages
import os

# Read the README file for long description
def read_readme():
    """Read README.md for package long description."""
    readme_path = os.path.join(os.path.dirname(__file__), 'README.md')
    if os.path.exists(readme_path):
        with open(readme_path, 'r', encoding='utf-8') as f:
            return f.read()
    return "Mastodon Docker Cleanup - tootctl maintenance tasks with single-instance locking"

# Read requirements from requirements.txt
def read_requirements():
    """Read requirements from requirements.txt file."""
    requirements_path = os.path.join(os.path.dirname(__file__), 'requirements.txt')
    if os.path.exists(requirements_path):
        with open(requirements_path, 'r', encoding='utf-8') as f:
            return [line.strip() for line in f if line.strip() and not line.startswith('#')]
    return []

# Define package metadata
setup(
    name='mastodon-cleanup',
    version='1.0.0',
    description='Mastodon Docker Cleanup - tootctl maintenance tasks with single-instance locking',
    long_description=read_readme(),
    long_description_content_type='text/markdown',
    author='Mastodon Admin Tools',
    author_email='',
    license='CC-BY-SA-4.0',

    # Package structure - use mastodon_cleanup namespace
    packages=['mastodon_cleanup'] + ['mastodon_cleanup.' + pkg for pkg in find_packages(where='src')],
    package_dir={
        'mastodon_cleanup': 'src',
    },

    # Python version requirement
    python_requires='>=3.8',

    # Dependencies from requirements.txt
    install_requires=read_requirements(),

    # Optional dependencies
    extras_require={
        'dev': [
            'pytest>=6.0.0',
            'pytest-cov>=2.0.0',
            'flake8>=3.8.0',
        ],
    },

    # Entry points for command-line scripts
    entry_points={
        'console_scripts': [
            'mastodon-cleanup=mastodon_cleanup.cleanup.cli:main',
        ],
    },

    # Classification
    classifiers=[
        'Development Status :: 4 - Beta',
        'Environment :: Console',
        'Intended Audience :: System Administrators',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python :: 3',
        'Topic :: System :: Systems Administration',
    ],

    # Keywords
    keywords='mastodon tootctl docker cleanup maintenance',
)
