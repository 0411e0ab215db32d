from django.contrib import admin
from .models import Company, CompanyInteraction


class CompanyInteractionInline(admin.TabularInline):
    model = CompanyInteraction
    extra = 0
    raw_id_fields = ('placement_officer',)


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ('name', 'contact_person', 'collaboration_status', 'company_status', 'created_at')
    list_filter = ('collaboration_status', 'company_status')
    search_fields = ('name', 'contact_person', 'contact_email')
    inlines = [CompanyInteractionInline]


@admin.register(CompanyInteraction)
class CompanyInteractionAdmin(admin.ModelAdmin):
    list_display = ('company', 'interaction_type', 'placement_officer', 'interaction_date')
    list_filter = ('interaction_type',)
    search_fields = ('company__name', 'description')
    raw_id_fields = ('company', 'placement_officer')
