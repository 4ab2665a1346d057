from django.urls import path
from . import views

urlpatterns = [
    path('reports/summary/', views.report_summary, name='report-summary'),
]
