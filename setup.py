#!/usr/bin/env python

from setuptools import setup

setup(name='instrumented_tests',
      version='1.0',
      description='Run android instrumented tests against a newly created avd',
      packages=['instrumented_tests'],
      python_requires='>=3.6',
      install_requires=['colorama'],
      extras_require={'test': ['pytest']},
      entry_points={
          'console_scripts': ['instrumented-tests=instrumented_tests.__main__:main'],
      }
     )
