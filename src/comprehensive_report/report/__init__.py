"""
Report assembly: chart options, embedded assets and the HTML document.
"""
