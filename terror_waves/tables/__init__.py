# Coefficient tables and the markdown report
