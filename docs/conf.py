# Sphinx configuration file

import os
import sys
sys.path.insert(0, os.path.abspath('../src'))

from tickflow import __version__  # noqa: E402

project = 'tickflow'
copyright = '2026, tickflow contributors'
author = 'tickflow contributors'
version = '.'.join(__version__.split('.')[:2])
release = __version__

extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.napoleon',
    'sphinx.ext.viewcode',
    'sphinx.ext.intersphinx',
    'sphinx_autodoc_typehints',
]

root_doc = 'index'
templates_path = ['_templates']
exclude_patterns = ['_build', 'Thumbs.db', '.DS_Store']

html_theme = 'sphinx_rtd_theme'
html_static_path = ['_static']
html_title = f'tickflow {release}'

# Autodoc settings
autodoc_default_options = {
    'members': True,
    'member-order': 'bysource',
    'undoc-members': True,
    'show-inheritance': True,
    'exclude-members': '__weakref__, model_config, model_fields',
}
autodoc_typehints = 'description'
autodoc_type_aliases = {
    'Directive': 'tickflow.workflow.step.Directive',
    'StepHandler': 'tickflow.workflow.step.StepHandler',
    'StepResolver': 'tickflow.workflow.step.StepResolver',
}
typehints_fully_qualified = False
always_document_param_types = False

# Napoleon settings (Google style only)
napoleon_google_docstring = True
napoleon_numpy_docstring = False
napoleon_use_rtype = False

# Intersphinx mapping
intersphinx_mapping = {
    'python': ('https://docs.python.org/3', None),
    'pydantic': ('https://docs.pydantic.dev/latest', None),
}
