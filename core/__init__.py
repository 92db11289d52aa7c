"""Configuration, logging, provider registry and conversation storage"""
