"""
Packaging script for PyPI.
"""
import setuptools

setuptools.setup(
	name='scriptgraph',
	version='0.1.0',
	packages=['scriptgraph', ],
	entry_points={
		'console_scripts': ["scriptgraph = scriptgraph.cmdline:main"],
	},
	license='MIT',
	description='Compiles a small Python-syntax scripting language into typed IR graphs',
	long_description=open('README.md').read(),
	long_description_content_type="text/markdown",
	classifiers=[
		"Programming Language :: Python :: 3.10",
		"License :: OSI Approved :: MIT License",
		"Operating System :: OS Independent",
		"Development Status :: 3 - Alpha",
		"Intended Audience :: Developers",
		"Topic :: Software Development :: Compilers",
		"Environment :: Console",
    ],
	python_requires='>=3.10',
	install_requires=[
		"booze-tools>=0.6.2.1",
	]
)
