from setuptools import setup, find_packages
from pathlib import Path

# Read requirements.txt for the install_requires field
with open('requirements.txt') as f:
    requirements = f.read().splitlines()

# Read README.md if it exists
readme_path = Path(__file__).parent / 'README.md'
long_description = readme_path.read_text() if readme_path.exists() else 'piSignage golden image provisioning tools'

setup(
    name='pisignage_tools',
    version='1.0.5',
    description='Provisions Raspberry Pi piSignage players: HDMI audio, server URL and first-boot identity regeneration.',
    long_description=long_description,
    long_description_content_type='text/markdown',
    package_dir={'': 'src'},  # Tells setuptools packages are under src
    packages=find_packages(where='src',),  # Find packages in src
    include_package_data=True,
    install_requires=requirements,
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'pisignage-golden-setup=pisignage_tools.services.pisignage_golden_setup:main',
            'pisignage-first-boot=pisignage_tools.services.pisignage_first_boot:main',
            'pisignage-set-hostname=pisignage_tools.services.pisignage_set_hostname:main',
        ],
    },
    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: POSIX :: Linux',
    ],
    python_requires='>=3.9'
)
