"""HTTP admin surface for the statistics and backup pipeline"""
