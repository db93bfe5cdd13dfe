# -*- coding: utf-8 -*-
"""
服务层：日志、配置和被测系统 Handler
"""
