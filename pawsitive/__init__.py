"""Pawsitive Petsitting - shared pet-sitting activity tracker."""
