"""Feed-forward network classification of iris measurements with k-fold evaluation."""
