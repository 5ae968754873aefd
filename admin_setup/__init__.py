# admin_setup/__init__.py
# -*- coding: utf-8 -*-
"""
Admin node bootstrap installer.

Validates the host, installs the barclamps, negotiates the default proposal
and walks the admin node through its lifecycle states.
"""
