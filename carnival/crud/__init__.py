# -*- coding: utf-8 -*-
# carnival/crud/__init__.py
# Async-CRUD хранилища Alphabet Carnival (без бизнес-правил и без commit).
