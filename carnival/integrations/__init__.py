# -*- coding: utf-8 -*-
# carnival/integrations/__init__.py
# Внешние участники движка: VRF-координатор и казна.
