"""Debate Battle API - FastAPI service for streamed debate rounds"""
