"""DirectorAI CLI"""
